"""
Administrator diagnostics: settings, API connection, extraction, pass and button checks.
"""
import logging
from typing import Optional

from sqlmodel import select

from passbridge.models.orders import Order, OrderItem
from passbridge.schemas.diagnostics import DiagnosticReport, DiagnosticSection
from passbridge.services.orchestrator import PassOrchestrator
from passbridge.services.pass_records import PassRecordStore
from passbridge.services.settings_service import SettingsService
from passbridge.services.ticket_extractor import TicketDataExtractor

logger = logging.getLogger(__name__)

REPORTED_ORDER_STATUSES = ("completed", "processing")


class DiagnosticsService:
    """Runs the same checks an administrator would do by hand."""

    def __init__(self, orchestrator: PassOrchestrator):
        self.orchestrator = orchestrator

    async def run_report(self) -> DiagnosticReport:
        sections = [await self.check_settings(), await self.check_api_connection()]

        order_id = await self.get_recent_ticket_order()
        sections.append(await self.check_data_extraction(order_id))
        sections.append(await self.check_pass_generation(order_id))
        sections.append(await self.check_button_rendering(order_id))

        passed = sum(1 for section in sections if section.ok)
        logger.info(f"Diagnostics report: {passed}/{len(sections)} checks passed")
        return DiagnosticReport(ok=passed == len(sections), sections=sections)

    async def check_settings(self) -> DiagnosticSection:
        async with self.orchestrator.session_maker() as session:
            pass_settings = await SettingsService(session).load()

        missing = []
        if not pass_settings.client_hash:
            missing.append("PassSource Client Hash")
        if not pass_settings.template_hash:
            missing.append("PassSource Template Hash")

        return DiagnosticSection(
            name="settings",
            ok=not missing,
            message=f"Missing required settings: {', '.join(missing)}" if missing
            else "All required settings are configured.",
            details={
                "button_style": pass_settings.button_style,
                "enable_checkout_button": pass_settings.enable_checkout_button,
                "enable_email_button": pass_settings.enable_email_button,
            },
        )

    async def check_api_connection(self) -> DiagnosticSection:
        result = await self.orchestrator.verify_credentials()
        template_info = {key: value for key, value in result.template_info.items() if isinstance(value, str)}
        return DiagnosticSection(
            name="api_connection",
            ok=result.ok,
            message=f"API connection {'successful' if result.ok else 'failed'}: {result.message}",
            details={"template": template_info} if template_info else {},
        )

    async def get_recent_ticket_order(self) -> Optional[int]:
        async with self.orchestrator.session_maker() as session:
            result = await session.exec(
                select(Order.order_id)
                .join(OrderItem, OrderItem.order_id == Order.order_id)
                .where(Order.status.in_(REPORTED_ORDER_STATUSES), OrderItem.event_id.is_not(None))
                .order_by(Order.created_at.desc(), Order.order_id.desc())
                .limit(1)
            )
            return result.first()

    async def check_data_extraction(self, order_id: Optional[int]) -> DiagnosticSection:
        if order_id is None:
            return _no_order("data_extraction")

        async with self.orchestrator.session_maker() as session:
            extractor = TicketDataExtractor(session)
            attendees = await extractor.get_attendees_for_order(order_id)
            ticket_data = await extractor.extract(order_id)

        if ticket_data is None:
            return DiagnosticSection(
                name="data_extraction",
                ok=False,
                message=f"Failed to extract ticket data for order #{order_id}.",
                details={"order_id": order_id, "attendees": len(attendees)},
            )
        return DiagnosticSection(
            name="data_extraction",
            ok=True,
            message=f"Extracted ticket data for order #{order_id}, attendee #{ticket_data.attendee_id}.",
            details={"order_id": order_id, "attendees": len(attendees), "ticket": ticket_data.model_dump()},
        )

    async def check_pass_generation(self, order_id: Optional[int]) -> DiagnosticSection:
        if order_id is None:
            return _no_order("pass_generation")

        async with self.orchestrator.session_maker() as session:
            ticket_data = await TicketDataExtractor(session).extract(order_id)
        if ticket_data is None:
            return DiagnosticSection(name="pass_generation", ok=False,
                                     message=f"No ticket data for order #{order_id}.")

        result = await self.orchestrator.on_ticket_data_extracted(ticket_data, order_id)
        return DiagnosticSection(
            name="pass_generation",
            ok=result.success,
            message=(f"Pass for order #{order_id}, attendee #{ticket_data.attendee_id}: {result.pass_url}"
                     if result.success else f"Failed to generate pass: {result.message}"),
            details=result.model_dump(exclude_none=True),
        )

    async def check_button_rendering(self, order_id: Optional[int]) -> DiagnosticSection:
        if order_id is None:
            return _no_order("button_rendering")

        async with self.orchestrator.session_maker() as session:
            pass_url = await PassRecordStore(session).get_pass_url(order_id)
        if not pass_url:
            return DiagnosticSection(
                name="button_rendering",
                ok=False,
                message=f"No pass URL found for order #{order_id}. Please generate a pass first.",
            )

        renderer = self.orchestrator.renderer
        page_html = renderer.render(pass_url, "both", "page")
        email_html = renderer.render(pass_url, "both", "email")
        return DiagnosticSection(
            name="button_rendering",
            ok=bool(page_html and email_html),
            message="Rendered buttons for website and email.",
            details={"page_length": len(page_html), "email_length": len(email_html)},
        )


def _no_order(name: str) -> DiagnosticSection:
    return DiagnosticSection(
        name=name,
        ok=False,
        message="No recent orders with event tickets found. Please create a test order.",
    )
