from .base import BaseModel
from .events import Attendee, Event, EventLocation, Ticket
from .meta import OrderMeta
from .orders import Order, OrderItem
from .settings import IntegrationSettings

__all__ = [
    "BaseModel", "Attendee", "Event", "EventLocation", "Ticket",
    "OrderMeta", "Order", "OrderItem", "IntegrationSettings",
]
