"""
Order-scoped key/value metadata owned by this service.
"""
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import Field
from .base import BaseModel


class OrderMeta(BaseModel, table=True):
    """One metadata value attached to an order."""
    __tablename__ = "order_meta"
    __table_args__ = (UniqueConstraint("order_id", "meta_key", name="uq_order_meta_key"),)

    meta_id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(index=True)
    meta_key: str = Field(max_length=255)
    meta_value: str = Field(default="")

    def __repr__(self):
        return f"<OrderMeta(order={self.order_id}, key='{self.meta_key}')>"
