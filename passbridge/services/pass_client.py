"""
PassSource API client: maps ticket data to the pass schema and creates passes.
"""
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional, Sequence

import httpx
from cryptography.hazmat.primitives import hashes
from redis.exceptions import RedisError

from passbridge.core.config import settings
from passbridge.schemas.passes import PassRecord, PassResult, VerificationResult
from passbridge.schemas.settings import PassSettings
from passbridge.schemas.tickets import TicketData
from passbridge.services.errors import (
    ApiLogicError,
    ApiStatusError,
    ConfigurationError,
    CreationInProgressError,
    NetworkError,
    PassBridgeError,
    ResponseParseError,
)
from passbridge.services.pass_records import PassRecordStore

logger = logging.getLogger(__name__)

CREATE_PASS_PATH = "pass/create.php"
TEMPLATE_INFO_PATH = "template/info.php"
BARCODE_FORMAT = "PKBarcodeFormatQR"

# Receives the request body and the ticket it was built from, returns the body to send
PassDataFilter = Callable[[Dict[str, Any], TicketData], Dict[str, Any]]
DEFAULT_TERMS_TEXT = (
    "This ticket is subject to the event terms and conditions. This ticket cannot be replaced "
    "if lost, stolen or destroyed. Unauthorized resale or transfer of this ticket may result "
    "in cancellation without refund."
)


class PassSourceClient:
    """Client for the PassSource pass creation API."""

    def __init__(
        self,
        pass_settings: PassSettings,
        records: PassRecordStore,
        http_client: httpx.AsyncClient,
        base_url: str = settings.PASSSOURCE_API_BASE_URL,
        organization_name: str = settings.ORGANIZATION_NAME,
        timeout: float = settings.PASSSOURCE_TIMEOUT_SECONDS,
        lock_manager=None,
        lock_ttl: int = settings.PASS_LOCK_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        pass_data_filters: Sequence[PassDataFilter] = (),
    ):
        self.pass_settings = pass_settings
        self.records = records
        self.http_client = http_client
        self.base_url = base_url.rstrip("/") + "/"
        self.organization_name = organization_name
        self.timeout = timeout
        self.lock_manager = lock_manager
        self.lock_ttl = lock_ttl
        self.clock = clock
        self.pass_data_filters = list(pass_data_filters)

    async def create_or_get_pass(self, ticket_data: TicketData, order_id: int) -> PassResult:
        """
        Return the wallet pass URL for an attendee, creating the pass if needed.

        A stored pass short-circuits the call without touching the network.
        Every failure is reported in the result; nothing is retried.

        Args:
            ticket_data: Extracted ticket data for one attendee
            order_id: Host order ID

        Returns:
            PassResult with the pass URL on success, or an error code and message
        """
        attendee_id = ticket_data.attendee_id
        try:
            self._require_credentials()

            existing_pass_url = await self.records.get_pass_url(order_id, attendee_id)
            if existing_pass_url:
                self._debug(f"Using existing pass for order #{order_id}, attendee #{attendee_id}")
                return PassResult(success=True, pass_url=existing_pass_url, message="Using existing pass")

            async with self._creation_lock(order_id, attendee_id) as locked:
                if locked:
                    existing_pass_url = await self.records.get_pass_url(order_id, attendee_id)
                    if existing_pass_url:
                        return PassResult(success=True, pass_url=existing_pass_url, message="Using existing pass")

                pass_url = await self._create_pass(ticket_data, order_id)

            self._debug(f"Successfully created pass for order #{order_id}, attendee #{attendee_id}")
            return PassResult(success=True, pass_url=pass_url, created=True, message="Pass created")

        except PassBridgeError as e:
            logger.error(f"Failed to create pass for order #{order_id}, attendee #{attendee_id}: [{e.code}] {e}")
            return PassResult.failure(e)

    async def _create_pass(self, ticket_data: TicketData, order_id: int) -> str:
        pass_data = self.map_to_provider_fields(ticket_data)
        result = await self._post(CREATE_PASS_PATH, pass_data)

        pass_url = result.get("passUrl")
        if not result.get("success") or not isinstance(pass_url, str) or not pass_url:
            raise ApiLogicError(f"PassSource API returned error: {result.get('message') or 'Unknown error'}")

        await self.records.save(PassRecord(
            order_id=order_id,
            attendee_id=ticket_data.attendee_id,
            pass_url=pass_url,
            serial_number=_optional_str(result.get("serialNumber")),
            hashed_serial_number=_optional_str(result.get("hashedSerialNumber")),
        ))
        return pass_url

    def map_to_provider_fields(self, ticket_data: TicketData) -> Dict[str, Any]:
        """
        Build the pass/create request body in PassSource's flat field-path schema.

        Registered pass data filters run last, in registration order, and may
        change or add any field.
        """
        pass_data = {
            "templateHash": self.pass_settings.template_hash,
            "clientHash": self.pass_settings.client_hash,
            "serialNumber": self.generate_serial_number(ticket_data),
            "fields": {
                # Header fields
                "structure_headerFields_eventName_value": ticket_data.event_title,
                "structure_headerFields_eventName_label": "Event",

                # Primary fields
                "structure_primaryFields_eventDate_value": ticket_data.event_date,
                "structure_primaryFields_eventDate_label": "Date & Time",
                "structure_primaryFields_eventLocation_value": ticket_data.event_location,
                "structure_primaryFields_eventLocation_label": "Location",

                # Secondary fields
                "structure_secondaryFields_attendeeName_value": ticket_data.attendee_name,
                "structure_secondaryFields_attendeeName_label": "Attendee",
                "structure_secondaryFields_ticketType_value": ticket_data.ticket_type,
                "structure_secondaryFields_ticketType_label": "Ticket",

                # Auxiliary fields
                "structure_auxiliaryFields_purchaseDate_value": ticket_data.purchase_date,
                "structure_auxiliaryFields_purchaseDate_label": "Purchased",

                # Back fields
                "structure_backFields_description_value": ticket_data.event_description,
                "structure_backFields_description_label": "Event Details",
                "structure_backFields_terms_value": self.pass_settings.terms_text or DEFAULT_TERMS_TEXT,
                "structure_backFields_terms_label": "Terms & Conditions",

                "organizationName": self.organization_name,

                "barcode_message": ticket_data.qr_code,
                "barcode_format": BARCODE_FORMAT,
                "barcode_altText": "Scan to verify ticket",
            },
        }
        for pass_data_filter in self.pass_data_filters:
            pass_data = pass_data_filter(pass_data, ticket_data)
        return pass_data

    def generate_serial_number(self, ticket_data: TicketData) -> str:
        """MD5 of event id, attendee id and the current second; differs between calls."""
        base = f"{ticket_data.event_id}-{ticket_data.attendee_id}-{int(self.clock())}"
        digest = hashes.Hash(hashes.MD5())
        digest.update(base.encode("utf-8"))
        return digest.finalize().hex()

    async def verify_credentials(self) -> VerificationResult:
        """Check the configured hashes against the template/info endpoint."""
        if not self.pass_settings.has_credentials:
            return VerificationResult(
                ok=False,
                error=ConfigurationError.code,
                message="Missing client hash or template hash",
            )

        try:
            data = await self._post(TEMPLATE_INFO_PATH, {
                "clientHash": self.pass_settings.client_hash,
                "templateHash": self.pass_settings.template_hash,
                "action": "verify",
            })
        except PassBridgeError as e:
            logger.warning(f"PassSource credential verification failed: [{e.code}] {e}")
            return VerificationResult(ok=False, error=e.code, message=str(e))

        if data.get("success"):
            template = data.get("template")
            return VerificationResult(
                ok=True,
                message="API credentials verified successfully",
                template_info=template if isinstance(template, dict) else {},
            )

        return VerificationResult(
            ok=False,
            error=ApiLogicError.code,
            message=data.get("message") or "Unknown error",
        )

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = self.base_url + path
        self._debug(f"Sending request to PassSource API {url}: {json.dumps(_masked(payload))}")

        try:
            response = await self.http_client.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to PassSource failed: {e!r}") from e

        self._debug(f"PassSource API response code: {response.status_code}")
        self._debug(f"PassSource API response body: {response.text}")

        if response.status_code != 200:
            raise ApiStatusError(response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseParseError(f"Failed to parse API response: {e}") from e

        if not isinstance(data, dict):
            raise ResponseParseError("Failed to parse API response: expected a JSON object")
        return data

    @asynccontextmanager
    async def _creation_lock(self, order_id: int, attendee_id: str):
        """Hold the per-attendee creation lock; yields whether a lock is held."""
        if self.lock_manager is None:
            yield False
            return

        key = f"{settings.PASS_LOCK_KEY_PREFIX}{order_id}:{attendee_id}"
        try:
            token = await self.lock_manager.acquire_lock(key, self.lock_ttl)
        except RedisError as e:
            logger.warning(f"Creation lock unavailable for order #{order_id}, attendee #{attendee_id}: {e}")
            token = False

        if token is None:
            raise CreationInProgressError(
                f"Pass creation already in progress for order #{order_id}, attendee #{attendee_id}"
            )
        if token is False:
            yield False
            return

        try:
            yield True
        finally:
            try:
                await self.lock_manager.release_lock(key, token)
            except RedisError as e:
                logger.warning(f"Failed to release creation lock {key}: {e}")

    def _require_credentials(self) -> None:
        if not self.pass_settings.has_credentials:
            raise ConfigurationError("Missing PassSource credentials. Please configure the integration settings.")

    def _debug(self, message: str) -> None:
        if self.pass_settings.debug_enabled:
            logger.info(f"Debug: {message}")
        else:
            logger.debug(message)


def _optional_str(value: Optional[Any]) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def _masked(payload: Dict[str, Any]) -> Dict[str, Any]:
    if "clientHash" not in payload:
        return payload
    masked = dict(payload)
    masked["clientHash"] = "***"
    return masked
