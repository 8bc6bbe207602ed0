"""
Pydantic schemas for integration settings.
"""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

YesNo = Literal["yes", "no"]
ButtonStyle = Literal["apple", "google", "both"]


class PassSettings(BaseModel):
    """Immutable snapshot of the integration settings, passed into each component."""
    model_config = ConfigDict(frozen=True)

    client_hash: str = Field("", description="PassSource client hash")
    template_hash: str = Field("", description="PassSource template hash")
    enable_checkout_button: YesNo = Field("yes", description="Show wallet buttons on the checkout success page")
    enable_email_button: YesNo = Field("yes", description="Include wallet buttons in confirmation emails")
    button_style: ButtonStyle = Field("both", description="Which wallet buttons to show")
    terms_text: str = Field("", description="Terms printed on the back of the pass")
    debug_mode: YesNo = Field("no", description="Log provider requests and responses")

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_hash and self.template_hash)

    @property
    def checkout_button_enabled(self) -> bool:
        return self.enable_checkout_button == "yes"

    @property
    def email_button_enabled(self) -> bool:
        return self.enable_email_button == "yes"

    @property
    def debug_enabled(self) -> bool:
        return self.debug_mode == "yes"


class SettingsUpdate(BaseModel):
    """Schema for a partial settings update from the admin form."""
    client_hash: Optional[str] = Field(None, description="PassSource client hash")
    template_hash: Optional[str] = Field(None, description="PassSource template hash")
    enable_checkout_button: Optional[YesNo] = None
    enable_email_button: Optional[YesNo] = None
    button_style: Optional[ButtonStyle] = None
    terms_text: Optional[str] = None
    debug_mode: Optional[YesNo] = None


class SettingsResponse(PassSettings):
    """Schema for the settings returned to administrators."""
    updated_at: Optional[datetime] = None
