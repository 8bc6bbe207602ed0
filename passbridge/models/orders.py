"""
SQLModel definitions for the host platform's order records.

These tables belong to the host shop; this service only reads them.
"""
from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from .base import timestamp_field


class Order(SQLModel, table=True):
    """A shop order."""
    __tablename__ = "orders"

    order_id: int = Field(primary_key=True)
    status: str = Field(default="pending", max_length=50)  # e.g. 'processing', 'completed'
    created_at: datetime = timestamp_field()

    def __repr__(self):
        return f"<Order(id={self.order_id}, status='{self.status}')>"


class OrderItem(SQLModel, table=True):
    """A line item of an order, annotated with an event id when it is a ticket."""
    __tablename__ = "order_items"

    item_id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(index=True, foreign_key="orders.order_id")
    name: str = Field(default="", max_length=255)
    event_id: Optional[int] = Field(default=None, index=True)

    def __repr__(self):
        return f"<OrderItem(id={self.item_id}, order={self.order_id}, event={self.event_id})>"
