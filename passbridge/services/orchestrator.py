"""
Wires host hooks to ticket extraction, pass creation and button rendering.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from passbridge.core.config import settings
from passbridge.managers.event_bus import EventBus, HookEvent
from passbridge.managers.scheduler import DelayedTaskScheduler
from passbridge.schemas.passes import PassResult, VerificationResult
from passbridge.schemas.settings import PassSettings
from passbridge.schemas.tickets import TicketData
from passbridge.services.pass_client import PassDataFilter, PassSourceClient
from passbridge.services.pass_records import PassRecordStore
from passbridge.services.settings_service import SettingsService
from passbridge.services.ticket_extractor import TicketDataExtractor
from passbridge.services.wallet_buttons import WalletButtonRenderer

logger = logging.getLogger(__name__)


class PassOrchestrator:
    """
    Composition root for the pass pipeline.

    Checkout completion, order completion, the thank-you page and the delayed
    re-check all funnel into ``process_order``; pass creation itself is
    idempotent per attendee, so firing more than one trigger is safe.
    Every entry point opens its own session, so it can also run outside a request.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        http_client: httpx.AsyncClient,
        bus: Optional[EventBus] = None,
        scheduler: Optional[DelayedTaskScheduler] = None,
        lock_manager=None,
        renderer: Optional[WalletButtonRenderer] = None,
        delay: float = settings.DELAYED_PROCESSING_SECONDS,
        client_options: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session_maker = session_maker
        self.http_client = http_client
        self.bus = bus or EventBus()
        self.scheduler = scheduler or DelayedTaskScheduler()
        self.lock_manager = lock_manager
        self.renderer = renderer or WalletButtonRenderer()
        self.delay = delay
        self.client_options = client_options or {}
        self.clock = clock
        self.pass_data_filters: List[PassDataFilter] = []
        self.register()

    def register(self) -> None:
        self.bus.subscribe(HookEvent.CHECKOUT_COMPLETED, self.on_checkout_completed)
        self.bus.subscribe(HookEvent.ORDER_COMPLETED, self.on_order_completed)
        self.bus.subscribe(HookEvent.THANKYOU_VIEWED, self.on_thankyou_viewed)
        self.bus.subscribe(HookEvent.ADD_TO_CART_REDIRECT, self.on_add_to_cart_redirect)
        self.bus.subscribe(HookEvent.DELAYED_PROCESSING, self.on_delayed_processing)
        self.bus.subscribe(HookEvent.TICKET_DATA_EXTRACTED, self.on_ticket_data_extracted)

    def add_pass_data_filter(self, pass_data_filter: PassDataFilter) -> None:
        """Customize the pass request body; filters run in the order they were added."""
        self.pass_data_filters.append(pass_data_filter)

    def build_pass_client(self, session, pass_settings: PassSettings) -> PassSourceClient:
        return PassSourceClient(
            pass_settings,
            PassRecordStore(session),
            self.http_client,
            lock_manager=self.lock_manager,
            clock=self.clock,
            pass_data_filters=self.pass_data_filters,
            **self.client_options,
        )

    # -------------------------------------------------------------------------
    # Hook handlers
    # -------------------------------------------------------------------------

    async def on_checkout_completed(self, order_id: int, data: Optional[Dict[str, Any]] = None) -> int:
        return await self.process_order(order_id)

    async def on_order_completed(self, order_id: int) -> int:
        return await self.process_order(order_id)

    async def on_thankyou_viewed(self, order_id: int) -> int:
        async with self.session_maker() as session:
            if await PassRecordStore(session).is_processed(order_id):
                return 0
            if not await TicketDataExtractor(session).order_has_event_tickets(order_id):
                return 0

        processed = await self.process_order(order_id)

        async with self.session_maker() as session:
            await PassRecordStore(session).mark_processed(order_id)
        return processed

    async def on_add_to_cart_redirect(self, order_id: int) -> bool:
        # The host may still be generating tickets; look again later.
        return self.scheduler.schedule(
            f"delayed_processing:{order_id}",
            self.delay,
            self.bus.publish,
            HookEvent.DELAYED_PROCESSING,
            order_id,
        )

    async def on_delayed_processing(self, order_id: int) -> int:
        return await self.process_order(order_id)

    async def on_ticket_data_extracted(self, ticket_data: TicketData, order_id: int) -> PassResult:
        async with self.session_maker() as session:
            pass_settings = await SettingsService(session).load()
            client = self.build_pass_client(session, pass_settings)
            return await client.create_or_get_pass(ticket_data, order_id)

    async def process_order(self, order_id: int) -> int:
        """Extract every attendee's ticket and announce it; returns the ticket count."""
        async with self.session_maker() as session:
            extractor = TicketDataExtractor(session)
            if not await extractor.order_has_event_tickets(order_id):
                logger.debug(f"Order #{order_id} has no event tickets")
                return 0
            tickets = await extractor.extract_all(order_id)

        for ticket_data in tickets:
            await self.bus.publish(HookEvent.TICKET_DATA_EXTRACTED, ticket_data, order_id)
        return len(tickets)

    # -------------------------------------------------------------------------
    # Render points
    # -------------------------------------------------------------------------

    async def render_checkout_content(self, order_id: int) -> str:
        async with self.session_maker() as session:
            pass_settings = await SettingsService(session).load()
            if not pass_settings.checkout_button_enabled:
                return ""
            pass_url = await PassRecordStore(session).get_pass_url(order_id)

        if not pass_url:
            return ""
        return self.renderer.render(pass_url, pass_settings.button_style, "page")

    async def filter_email_content(self, content: str, order_id: int) -> str:
        async with self.session_maker() as session:
            pass_settings = await SettingsService(session).load()
            if not pass_settings.email_button_enabled:
                return content
            pass_url = await PassRecordStore(session).get_pass_url(order_id)

        if not pass_url:
            return content
        buttons_html = self.renderer.render(pass_url, pass_settings.button_style, "email")
        return self.renderer.splice_into_email(content, buttons_html)

    async def verify_credentials(self) -> VerificationResult:
        async with self.session_maker() as session:
            pass_settings = await SettingsService(session).load()
            return await self.build_pass_client(session, pass_settings).verify_credentials()
