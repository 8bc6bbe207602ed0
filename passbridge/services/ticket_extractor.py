"""
Ticket data extraction from host orders, events and attendees.
"""
import html
import logging
from datetime import date, datetime, time
from typing import List, Optional, Union

import nh3
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from passbridge.core.config import settings
from passbridge.models.events import Attendee, Event, EventLocation, Ticket
from passbridge.models.orders import Order, OrderItem
from passbridge.schemas.tickets import TicketData
from passbridge.services.errors import ExtractionEmpty

logger = logging.getLogger(__name__)

DESCRIPTION_WORD_LIMIT = 100
DEFAULT_TICKET_TYPE = "Standard Ticket"

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%d-%m-%Y")
_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p")


def _parse(value: str, formats) -> Optional[datetime]:
    for fmt in formats:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def format_display_date(value: str, fmt: str = settings.DATE_FORMAT) -> str:
    """Format a raw host date; ``{day}`` in ``fmt`` is the unpadded day of month."""
    parsed = _parse(value, _DATE_FORMATS)
    if parsed is None:
        return value
    return _render(parsed.date(), fmt)


def format_display_time(value: str, fmt: str = settings.TIME_FORMAT) -> str:
    """Format a raw host time; ``{hour}`` in ``fmt`` is the unpadded 12-hour clock hour."""
    parsed = _parse(value, _TIME_FORMATS)
    if parsed is None:
        return value
    return _render(parsed.time(), fmt)


def _render(value: Union[date, time], fmt: str) -> str:
    placeholders = {}
    if isinstance(value, date):
        placeholders["day"] = value.day
    else:
        placeholders["hour"] = value.hour % 12 or 12
    return value.strftime(fmt).format(**placeholders)


def strip_all_tags(text: str) -> str:
    """Plain text of an HTML fragment; script and style bodies are dropped."""
    if not text:
        return ""
    # nh3 re-escapes the remaining text
    return html.unescape(nh3.clean(text, tags=set(), strip_comments=True)).strip()


def trim_words(text: str, limit: int = DESCRIPTION_WORD_LIMIT, more: str = "…") -> str:
    words = text.split()
    if len(words) > limit:
        return " ".join(words[:limit]) + more
    return " ".join(words)


class TicketDataExtractor:
    """Builds ``TicketData`` records from host records. Read-only."""

    def __init__(self, db: AsyncSession, date_format: str = settings.DATE_FORMAT,
                 time_format: str = settings.TIME_FORMAT):
        self.db = db
        self.date_format = date_format
        self.time_format = time_format

    async def get_order(self, order_id: int) -> Optional[Order]:
        return await self.db.get(Order, order_id)

    async def get_event_items(self, order_id: int) -> List[OrderItem]:
        result = await self.db.exec(
            select(OrderItem)
            .where(OrderItem.order_id == order_id, OrderItem.event_id.is_not(None))
            .order_by(OrderItem.item_id)
        )
        return list(result.all())

    async def order_has_event_tickets(self, order_id: int) -> bool:
        return bool(await self.get_event_items(order_id))

    async def get_attendees_for_order(self, order_id: int) -> List[Attendee]:
        result = await self.db.exec(
            select(Attendee).where(Attendee.order_id == order_id).order_by(Attendee.attendee_id)
        )
        return list(result.all())

    async def get_attendee_for_event(self, order_id: int, event_id: int) -> Optional[Attendee]:
        result = await self.db.exec(
            select(Attendee)
            .where(Attendee.order_id == order_id, Attendee.event_id == event_id)
            .order_by(Attendee.attendee_id)
        )
        return result.first()

    async def extract(self, order_id: int) -> Optional[TicketData]:
        """
        Extract ticket data for the first event ticket of an order.

        Args:
            order_id: Host order ID

        Returns:
            TicketData, or None if the order, event or attendee cannot be resolved
        """
        try:
            if await self.get_order(order_id) is None:
                raise ExtractionEmpty(f"Order #{order_id} not found")

            items = await self.get_event_items(order_id)
            if not items:
                raise ExtractionEmpty(f"Order #{order_id} has no event tickets")

            item = items[0]
            attendee = await self.get_attendee_for_event(order_id, item.event_id)
            if attendee is None:
                raise ExtractionEmpty(f"No attendee for order #{order_id}, event #{item.event_id}")

            return await self._build_ticket_data(attendee, event_id=item.event_id, fallback_ticket_type=item.name)
        except ExtractionEmpty as e:
            logger.debug(f"Ticket data extraction skipped: {e}")
            return None

    async def extract_all(self, order_id: int) -> List[TicketData]:
        """Extract ticket data for every attendee of an order."""
        attendees = await self.get_attendees_for_order(order_id)
        if not attendees:
            logger.info(f"No attendees found for order #{order_id}")
            return []

        tickets = []
        for attendee in attendees:
            ticket_data = await self.extract_from_attendee(attendee)
            if ticket_data is not None:
                tickets.append(ticket_data)
        return tickets

    async def extract_from_attendee(self, attendee: Attendee) -> Optional[TicketData]:
        try:
            return await self._build_ticket_data(attendee)
        except ExtractionEmpty as e:
            logger.debug(f"Ticket data extraction skipped for attendee #{attendee.attendee_id}: {e}")
            return None

    async def _build_ticket_data(self, attendee: Attendee, event_id: Optional[int] = None,
                                 fallback_ticket_type: str = "") -> TicketData:
        event_id = event_id or attendee.event_id
        if not event_id:
            raise ExtractionEmpty(f"Attendee #{attendee.attendee_id} has no event")

        event = await self.db.get(Event, event_id)
        if event is None:
            raise ExtractionEmpty(f"Event #{event_id} not found")

        ticket_type = ""
        if attendee.ticket_id:
            ticket = await self.db.get(Ticket, attendee.ticket_id)
            if ticket:
                ticket_type = ticket.title

        ticket_data = TicketData(
            event_id=str(event.event_id),
            event_title=event.title,
            event_date=self.format_event_date(event),
            event_location=await self.get_event_location(event),
            event_description=self.get_event_description(event),
            attendee_id=str(attendee.attendee_id),
            attendee_name=self.get_attendee_name(attendee),
            ticket_type=ticket_type or fallback_ticket_type or DEFAULT_TICKET_TYPE,
            purchase_date=attendee.created_at.strftime("%Y-%m-%d %H:%M:%S") if attendee.created_at else "",
            qr_code=attendee.qr_code or "",
        )
        if not ticket_data.is_valid:
            raise ExtractionEmpty(f"Incomplete ticket data for attendee #{attendee.attendee_id}")
        return ticket_data

    def format_event_date(self, event: Event) -> str:
        """
        Compose the display date of an event.

        The end date is only repeated when it differs from the start date;
        a same-day event with an end time shows just the end time.
        """
        if not event.start_date:
            return ""

        formatted = format_display_date(event.start_date, self.date_format)
        if event.start_time:
            formatted += " " + format_display_time(event.start_time, self.time_format)

        if event.end_date and event.end_date != event.start_date:
            formatted += " - " + format_display_date(event.end_date, self.date_format)
            if event.end_time:
                formatted += " " + format_display_time(event.end_time, self.time_format)
        elif event.end_time:
            formatted += " - " + format_display_time(event.end_time, self.time_format)

        return formatted

    async def get_event_location(self, event: Event) -> str:
        if event.venue:
            return event.venue

        result = await self.db.exec(
            select(EventLocation)
            .where(EventLocation.event_id == event.event_id)
            .order_by(EventLocation.location_id)
        )
        return ", ".join(location.name for location in result.all())

    @staticmethod
    def get_event_description(event: Event) -> str:
        if event.excerpt:
            return strip_all_tags(event.excerpt)
        return trim_words(strip_all_tags(event.content))

    @staticmethod
    def get_attendee_name(attendee: Attendee) -> str:
        if attendee.first_name or attendee.last_name:
            return f"{attendee.first_name} {attendee.last_name}".strip()
        return attendee.name or ""
