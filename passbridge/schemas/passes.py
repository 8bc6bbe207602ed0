"""
Pydantic schemas for pass creation results and provider responses.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class PassRecord(BaseModel):
    """Stored pass data for one attendee of an order."""
    order_id: int
    attendee_id: Optional[str] = None
    pass_url: str
    serial_number: Optional[str] = None
    hashed_serial_number: Optional[str] = None


class PassResult(BaseModel):
    """Outcome of a create-or-get call."""
    success: bool
    pass_url: Optional[str] = None
    created: bool = Field(False, description="True when a new pass was created by this call")
    error: Optional[str] = Field(None, description="Error code when success is False")
    message: str = ""
    status_code: Optional[int] = None

    @classmethod
    def failure(cls, error) -> "PassResult":
        return cls(
            success=False,
            error=error.code,
            message=str(error),
            status_code=getattr(error, "status_code", None),
        )


class VerificationResult(BaseModel):
    """Outcome of a credential verification call."""
    ok: bool
    message: str
    error: Optional[str] = None
    template_info: Dict[str, Any] = Field(default_factory=dict)
