"""
SQLModel definitions for the host platform's event, ticket and attendee records.
"""
from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from .base import timestamp_field


class Event(SQLModel, table=True):
    """An event that tickets are sold for."""
    __tablename__ = "events"

    event_id: int = Field(primary_key=True)
    title: str = Field(default="", max_length=255)
    content: str = Field(default="")
    excerpt: str = Field(default="")
    # Raw host values, e.g. '2024-06-01' and '18:00'
    start_date: str = Field(default="", max_length=20)
    start_time: str = Field(default="", max_length=20)
    end_date: str = Field(default="", max_length=20)
    end_time: str = Field(default="", max_length=20)
    venue: str = Field(default="", max_length=255)

    def __repr__(self):
        return f"<Event(id={self.event_id}, title='{self.title}')>"


class EventLocation(SQLModel, table=True):
    """Location taxonomy term attached to an event."""
    __tablename__ = "event_locations"

    location_id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(index=True, foreign_key="events.event_id")
    name: str = Field(max_length=255)


class Ticket(SQLModel, table=True):
    """Ticket variation (e.g. 'VIP', 'Early Bird')."""
    __tablename__ = "tickets"

    ticket_id: int = Field(primary_key=True)
    title: str = Field(default="", max_length=255)


class Attendee(SQLModel, table=True):
    """One ticket holder within an order."""
    __tablename__ = "attendees"

    attendee_id: int = Field(primary_key=True)
    order_id: int = Field(index=True)
    event_id: Optional[int] = Field(default=None, index=True)
    ticket_id: Optional[int] = Field(default=None)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    name: str = Field(default="", max_length=255)
    qr_code: str = Field(default="")
    created_at: datetime = timestamp_field()

    def __repr__(self):
        return f"<Attendee(id={self.attendee_id}, order={self.order_id}, event={self.event_id})>"
