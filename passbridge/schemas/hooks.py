"""
Pydantic schemas for host platform webhook payloads and render requests.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class CheckoutCompletedHook(BaseModel):
    """Schema for the checkout-completed hook."""
    order_id: int = Field(..., description="Host order ID")
    data: Dict[str, Any] = Field(default_factory=dict, description="Checkout data sent by the host")


class OrderHook(BaseModel):
    """Schema for hooks that only carry an order ID."""
    order_id: int = Field(..., description="Host order ID")


class AddToCartRedirectHook(BaseModel):
    """Schema for the add-to-cart redirect hook."""
    order_id: int = Field(..., description="Host order ID")
    redirect_url: str = Field("", description="Redirect URL, returned unchanged")


class HookAccepted(BaseModel):
    """Schema for hook acknowledgements."""
    accepted: bool = True
    order_id: int
    redirect_url: Optional[str] = None


class EmailContentRequest(BaseModel):
    """Schema for the email-template-content filter."""
    content: str = Field(..., description="Email HTML as rendered by the host")
    data: Dict[str, Any] = Field(default_factory=dict)


class EmailContentResponse(BaseModel):
    """Schema for the filtered email content."""
    content: str
