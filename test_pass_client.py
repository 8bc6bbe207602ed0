"""
Tests for the PassSource client: create-or-get, error classification and the creation lock.
"""
import asyncio
import hashlib
import logging
from datetime import timezone

import httpx
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from passbridge.core.database import init_db
from passbridge.models import Attendee, IntegrationSettings, Order, OrderMeta
from passbridge.schemas.settings import PassSettings, SettingsUpdate
from passbridge.schemas.tickets import TicketData
from passbridge.services.pass_client import DEFAULT_TERMS_TEXT, PassSourceClient
from passbridge.services.pass_records import PASS_URL_KEY, PassRecordStore, attendee_pass_url_key
from passbridge.services.settings_service import SettingsService

FIXED_TIME = 1700000000
ORDER_ID = 1001


def make_ticket(attendee_id="501", **overrides):
    fields = {
        "event_id": "55",
        "event_title": "Summer Gala",
        "event_date": "June 1, 2024 6:00 PM - 9:00 PM",
        "event_location": "Grand Hall",
        "event_description": "An evening of music and dancing.",
        "attendee_id": attendee_id,
        "attendee_name": "Jane Doe",
        "ticket_type": "VIP",
        "purchase_date": "2024-05-20 14:30:00",
        "qr_code": f"QR-{attendee_id}",
    }
    fields.update(overrides)
    return TicketData(**fields)


class TestPassSourceClient:

    @pytest.fixture
    def records(self, session):
        return PassRecordStore(session)

    @pytest.fixture
    def make_client(self, records, http_client, pass_settings):
        def _make(settings_override=None, **kwargs):
            kwargs.setdefault("clock", lambda: FIXED_TIME)
            return PassSourceClient(settings_override or pass_settings, records, http_client, **kwargs)
        return _make

    @pytest.mark.asyncio
    async def test_creates_pass_and_stores_record(self, make_client, records, provider):
        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is True
        assert result.created is True
        assert result.pass_url == "https://passsource.test/pass/1"
        assert len(provider.create_requests) == 1

        # Stored under the attendee key and the order-level key
        assert await records.get_meta(ORDER_ID, attendee_pass_url_key("501")) == result.pass_url
        assert await records.get_meta(ORDER_ID, PASS_URL_KEY) == result.pass_url

        record = await records.get_record(ORDER_ID, "501")
        assert record.serial_number == "serial-1"
        assert record.hashed_serial_number == "hashed-1"

    @pytest.mark.asyncio
    async def test_request_uses_provider_field_paths(self, make_client, provider):
        await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        request = provider.create_requests[0]
        assert str(request.url) == "https://www.passsource.com/api/pass/create.php"
        assert request.headers["content-type"] == "application/json"

        payload = provider.payload()
        assert payload["templateHash"] == "template-xyz"
        assert payload["clientHash"] == "client-abc"
        fields = payload["fields"]
        assert fields["structure_headerFields_eventName_value"] == "Summer Gala"
        assert fields["structure_primaryFields_eventDate_value"] == "June 1, 2024 6:00 PM - 9:00 PM"
        assert fields["structure_primaryFields_eventLocation_value"] == "Grand Hall"
        assert fields["structure_secondaryFields_attendeeName_value"] == "Jane Doe"
        assert fields["structure_secondaryFields_ticketType_value"] == "VIP"
        assert fields["structure_auxiliaryFields_purchaseDate_value"] == "2024-05-20 14:30:00"
        assert fields["structure_backFields_description_value"] == "An evening of music and dancing."
        assert fields["structure_backFields_terms_value"] == DEFAULT_TERMS_TEXT
        assert fields["barcode_message"] == "QR-501"
        assert fields["barcode_format"] == "PKBarcodeFormatQR"
        assert fields["barcode_altText"] == "Scan to verify ticket"

    @pytest.mark.asyncio
    async def test_custom_terms_text(self, make_client, pass_settings):
        custom = pass_settings.model_copy(update={"terms_text": "No refunds."})

        pass_data = make_client(custom).map_to_provider_fields(make_ticket())

        assert pass_data["fields"]["structure_backFields_terms_value"] == "No refunds."

    @pytest.mark.asyncio
    async def test_serial_number_is_md5_of_event_attendee_and_time(self, make_client):
        serial = make_client().generate_serial_number(make_ticket())

        assert serial == hashlib.md5(f"55-501-{FIXED_TIME}".encode()).hexdigest()
        assert len(serial) == 32

    @pytest.mark.asyncio
    async def test_serial_number_changes_with_time(self, make_client):
        ticks = iter([FIXED_TIME, FIXED_TIME + 1])
        client = make_client(clock=lambda: next(ticks))

        assert client.generate_serial_number(make_ticket()) != client.generate_serial_number(make_ticket())

    @pytest.mark.asyncio
    async def test_existing_pass_is_returned_without_network(self, make_client, provider):
        client = make_client()
        first = await client.create_or_get_pass(make_ticket(), ORDER_ID)
        second = await client.create_or_get_pass(make_ticket(), ORDER_ID)

        assert second.success is True
        assert second.created is False
        assert second.pass_url == first.pass_url
        assert len(provider.create_requests) == 1

    @pytest.mark.asyncio
    async def test_each_attendee_gets_own_pass(self, make_client, records, provider):
        client = make_client()
        first = await client.create_or_get_pass(make_ticket("501"), ORDER_ID)
        second = await client.create_or_get_pass(make_ticket("502"), ORDER_ID)

        assert first.pass_url != second.pass_url
        assert len(provider.create_requests) == 2
        assert await records.get_pass_url(ORDER_ID, "501") == first.pass_url
        assert await records.get_pass_url(ORDER_ID, "502") == second.pass_url
        # Order-level key holds the most recent pass
        assert await records.get_pass_url(ORDER_ID) == second.pass_url

    @pytest.mark.asyncio
    async def test_order_level_pass_used_when_no_attendee_keys(self, make_client, records, provider, session):
        await records.set_meta(ORDER_ID, PASS_URL_KEY, "https://passsource.test/legacy")
        await session.commit()

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.pass_url == "https://passsource.test/legacy"
        assert result.created is False
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_missing_credentials(self, make_client, provider):
        result = await make_client(PassSettings(client_hash="client-abc")).create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is False
        assert result.error == "configuration_error"
        assert "credentials" in result.message
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_non_200_status(self, make_client, records, provider):
        provider.response = httpx.Response(500, text="Internal Server Error")

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is False
        assert result.error == "api_status_error"
        assert result.status_code == 500
        assert result.message == "PassSource API returned status code: 500"
        assert await records.get_pass_url(ORDER_ID, "501") is None

    @pytest.mark.asyncio
    async def test_invalid_json(self, make_client, provider):
        provider.response = httpx.Response(200, text="<html>oops</html>")

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is False
        assert result.error == "response_parse_error"

    @pytest.mark.asyncio
    async def test_provider_reports_failure(self, make_client, provider):
        provider.response = httpx.Response(200, json={"success": False, "message": "Invalid template"})

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is False
        assert result.error == "api_logic_error"
        assert "Invalid template" in result.message

    @pytest.mark.asyncio
    async def test_success_without_pass_url(self, make_client, records, provider):
        provider.response = httpx.Response(200, json={"success": True})

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.error == "api_logic_error"
        assert "Unknown error" in result.message
        assert await records.get_pass_url(ORDER_ID) is None

    @pytest.mark.asyncio
    async def test_network_error(self, make_client, provider):
        provider.response = httpx.ConnectError("Connection refused")

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is False
        assert result.error == "network_error"

    @pytest.mark.asyncio
    async def test_lock_is_released_after_creation(self, make_client, lock_manager):
        result = await make_client(lock_manager=lock_manager).create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is True
        assert lock_manager.acquired == [f"passbridge_lock:{ORDER_ID}:501"]
        assert lock_manager.released == lock_manager.acquired
        assert lock_manager.locks == {}

    @pytest.mark.asyncio
    async def test_lock_is_released_after_failure(self, make_client, lock_manager, provider):
        provider.response = httpx.Response(503)

        result = await make_client(lock_manager=lock_manager).create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.error == "api_status_error"
        assert lock_manager.locks == {}

    @pytest.mark.asyncio
    async def test_held_lock_reports_in_progress(self, make_client, lock_manager, provider):
        lock_manager.locks[f"passbridge_lock:{ORDER_ID}:501"] = "other-worker"

        result = await make_client(lock_manager=lock_manager).create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is False
        assert result.error == "creation_in_progress"
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_unavailable_lock_falls_back_to_unlocked_creation(self, make_client, lock_manager, provider):
        lock_manager.unavailable = True

        result = await make_client(lock_manager=lock_manager).create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is True
        assert len(provider.create_requests) == 1

    @pytest.mark.asyncio
    async def test_verify_credentials(self, make_client, provider):
        result = await make_client().verify_credentials()

        assert result.ok is True
        assert result.template_info == {"name": "Event Ticket"}
        assert provider.payload()["action"] == "verify"
        assert str(provider.requests[0].url).endswith("template/info.php")

    @pytest.mark.asyncio
    async def test_verify_credentials_failure(self, make_client, provider):
        provider.response = httpx.Response(200, json={"success": False, "message": "Unknown client"})

        result = await make_client().verify_credentials()

        assert result.ok is False
        assert result.error == "api_logic_error"
        assert result.message == "Unknown client"

    @pytest.mark.asyncio
    async def test_verify_credentials_without_hashes(self, make_client, provider):
        result = await make_client(PassSettings()).verify_credentials()

        assert result.ok is False
        assert result.error == "configuration_error"
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_debug_mode_logs_masked_request(self, make_client, pass_settings, caplog):
        debug_settings = pass_settings.model_copy(update={"debug_mode": "yes"})

        with caplog.at_level(logging.INFO, logger="passbridge.services.pass_client"):
            await make_client(debug_settings).create_or_get_pass(make_ticket(), ORDER_ID)

        assert "Debug: Sending request to PassSource API" in caplog.text
        assert "client-abc" not in caplog.text
        assert "***" in caplog.text

    @pytest.mark.asyncio
    async def test_mapping_is_deterministic_at_same_instant(self, make_client):
        client = make_client()

        assert client.map_to_provider_fields(make_ticket()) == client.map_to_provider_fields(make_ticket())

    @pytest.mark.asyncio
    async def test_minimal_success_response(self, make_client, records, provider):
        provider.response = httpx.Response(200, json={"success": True, "passUrl": "https://x/y"})

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.pass_url == "https://x/y"
        assert await records.get_pass_url(ORDER_ID, "501") == "https://x/y"
        assert await records.get_pass_url(ORDER_ID) == "https://x/y"
        record = await records.get_record(ORDER_ID, "501")
        assert record.serial_number is None

    @pytest.mark.asyncio
    async def test_pass_data_filters_run_in_order(self, make_client):
        def add_gate(pass_data, ticket_data):
            pass_data["fields"]["structure_auxiliaryFields_gate_value"] = f"Gate for {ticket_data.event_title}"
            return pass_data

        def relabel_gate(pass_data, ticket_data):
            pass_data["fields"]["structure_auxiliaryFields_gate_label"] = "Gate"
            pass_data["fields"]["structure_headerFields_eventName_label"] = "Show"
            return pass_data

        pass_data = make_client(pass_data_filters=[add_gate, relabel_gate]).map_to_provider_fields(make_ticket())

        fields = pass_data["fields"]
        assert fields["structure_auxiliaryFields_gate_value"] == "Gate for Summer Gala"
        assert fields["structure_auxiliaryFields_gate_label"] == "Gate"
        assert fields["structure_headerFields_eventName_label"] == "Show"
        assert pass_data["templateHash"] == "template-xyz"

    @pytest.mark.asyncio
    async def test_record_store_failure_is_reported(self, make_client, records, provider, monkeypatch):
        async def failing_set_meta(order_id, meta_key, meta_value):
            raise OperationalError("INSERT INTO order_meta", {}, Exception("disk I/O error"))

        monkeypatch.setattr(records, "set_meta", failing_set_meta)

        result = await make_client().create_or_get_pass(make_ticket(), ORDER_ID)

        assert result.success is False
        assert result.error == "record_store_error"
        assert "order #1001" in result.message
        assert len(provider.create_requests) == 1


class TestPassRecordStore:

    @pytest.fixture
    async def file_session_maker(self, tmp_path):
        # Separate connections, so two sessions really write concurrently
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'passes.db'}")
        await init_db(engine)
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_concurrent_attendees_of_one_order(self, file_session_maker, http_client, pass_settings, provider):
        async with file_session_maker() as first, file_session_maker() as second:
            clients = [
                PassSourceClient(pass_settings, PassRecordStore(session), http_client, clock=lambda: FIXED_TIME)
                for session in (first, second)
            ]
            results = await asyncio.gather(
                clients[0].create_or_get_pass(make_ticket("501"), ORDER_ID),
                clients[1].create_or_get_pass(make_ticket("502"), ORDER_ID),
            )

        assert [result.success for result in results] == [True, True]
        assert results[0].pass_url != results[1].pass_url
        assert len(provider.create_requests) == 2

        async with file_session_maker() as session:
            records = PassRecordStore(session)
            assert await records.get_pass_url(ORDER_ID, "501") == results[0].pass_url
            assert await records.get_pass_url(ORDER_ID, "502") == results[1].pass_url
            assert await records.get_pass_url(ORDER_ID) in {result.pass_url for result in results}

            rows = await session.exec(
                select(func.count()).select_from(OrderMeta).where(
                    OrderMeta.order_id == ORDER_ID, OrderMeta.meta_key == PASS_URL_KEY
                )
            )
            assert rows.one() == 1

    @pytest.mark.asyncio
    async def test_set_meta_overwrites_existing_value(self, session):
        records = PassRecordStore(session)

        await records.set_meta(ORDER_ID, PASS_URL_KEY, "https://passsource.test/pass/1")
        await records.set_meta(ORDER_ID, PASS_URL_KEY, "https://passsource.test/pass/2")
        await session.commit()

        assert await records.get_meta(ORDER_ID, PASS_URL_KEY) == "https://passsource.test/pass/2"

    @pytest.mark.asyncio
    async def test_timestamps_are_timezone_aware(self, session):
        for row in (OrderMeta(order_id=ORDER_ID, meta_key="k"), IntegrationSettings(),
                    Order(order_id=ORDER_ID), Attendee(attendee_id=501, order_id=ORDER_ID)):
            assert row.created_at.tzinfo is timezone.utc

        assert OrderMeta.__table__.c.updated_at.type.timezone is True

        response = await SettingsService(session).update(SettingsUpdate(button_style="apple"))
        assert response.button_style == "apple"
