"""
Persisted integration settings (single row).
"""
from sqlmodel import Field
from .base import BaseModel

SETTINGS_ROW_ID = 1


class IntegrationSettings(BaseModel, table=True):
    """PassSource credentials and wallet button options."""
    __tablename__ = "integration_settings"

    settings_id: int = Field(default=SETTINGS_ROW_ID, primary_key=True)
    client_hash: str = Field(default="", max_length=255)
    template_hash: str = Field(default="", max_length=255)
    enable_checkout_button: str = Field(default="yes", max_length=3)  # 'yes' or 'no'
    enable_email_button: str = Field(default="yes", max_length=3)
    button_style: str = Field(default="both", max_length=10)  # 'apple', 'google' or 'both'
    terms_text: str = Field(default="")
    debug_mode: str = Field(default="no", max_length=3)

    def __repr__(self):
        return f"<IntegrationSettings(style='{self.button_style}')>"
