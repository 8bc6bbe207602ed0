"""
Pydantic schema for the ticket facts sent to the pass provider.
"""
from pydantic import BaseModel, Field


class TicketData(BaseModel):
    """Flat ticket/attendee/event record built for one attendee."""
    event_id: str = Field(..., description="Host event identifier")
    event_title: str = ""
    event_date: str = Field("", description="Pre-formatted display date")
    event_location: str = ""
    event_description: str = ""
    attendee_id: str = Field(..., description="Host attendee identifier")
    attendee_name: str = ""
    ticket_type: str = "Standard Ticket"
    purchase_date: str = ""
    qr_code: str = Field("", description="Opaque barcode payload")

    @property
    def is_valid(self) -> bool:
        return bool(self.event_id and self.attendee_id)
