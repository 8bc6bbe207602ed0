"""
"Add to Wallet" button markup for the checkout page and confirmation emails.
"""
from html import escape
from typing import List, Tuple

from passbridge.core.config import settings

TICKET_DETAILS_MARKER = "<!-- Ticket Details -->"

APPLE_BUTTON_IMAGE = "add-to-apple-wallet.png"
GOOGLE_BUTTON_IMAGE = "add-to-google-wallet.png"

EMAIL_WRAPPER_STYLE = (
    "margin: 20px 0; text-align: center; padding: 15px; background-color: #f9f9f9; "
    "border-radius: 5px; border: 1px solid #e0e0e0;"
)
EMAIL_LABEL_STYLE = "margin-bottom: 15px; font-weight: bold; font-size: 16px; color: #333;"
EMAIL_LINK_STYLE = "display: inline-block; margin: 10px 5px;"
EMAIL_IMAGE_STYLE = "max-width: 160px; height: auto;"


class WalletButtonRenderer:
    """Renders wallet buttons; a pure function of its inputs."""

    def __init__(self, assets_base_url: str = settings.ASSETS_BASE_URL):
        self.assets_base_url = assets_base_url.rstrip("/")

    @property
    def apple_button_url(self) -> str:
        return f"{self.assets_base_url}/images/{APPLE_BUTTON_IMAGE}"

    @property
    def google_button_url(self) -> str:
        return f"{self.assets_base_url}/images/{GOOGLE_BUTTON_IMAGE}"

    def _buttons(self, style: str) -> List[Tuple[str, str, str]]:
        buttons = []
        if style in ("apple", "both"):
            buttons.append(("apple", self.apple_button_url, "Add to Apple Wallet"))
        if style in ("google", "both"):
            buttons.append(("google", self.google_button_url, "Add to Google Wallet"))
        return buttons

    def render(self, pass_url: str, style: str = "both", variant: str = "page") -> str:
        """
        Render the wallet buttons block.

        Args:
            pass_url: Resolved pass URL; callers must not pass an empty URL
            style: 'apple', 'google' or 'both'
            variant: 'page' (CSS classes) or 'email' (inline styles only)

        Returns:
            HTML fragment
        """
        href = escape(pass_url, quote=True)
        parts = []

        if variant == "email":
            parts.append(f'<div style="{EMAIL_WRAPPER_STYLE}">')
            parts.append(f'<p style="{EMAIL_LABEL_STYLE}">Add this ticket to your mobile wallet:</p>')
            for _, image_url, alt in self._buttons(style):
                parts.append(f'<a href="{href}" style="{EMAIL_LINK_STYLE}" target="_blank">')
                parts.append(f'<img src="{escape(image_url, quote=True)}" style="{EMAIL_IMAGE_STYLE}" alt="{alt}">')
                parts.append("</a>")
        else:
            parts.append('<div class="passbridge-wallet-buttons">')
            parts.append("<h3>Add to Mobile Wallet</h3>")
            parts.append("<p>Download your ticket to Apple Wallet or Google Pay for easy access.</p>")
            for wallet, image_url, alt in self._buttons(style):
                parts.append(f'<a href="{href}" class="passbridge-{wallet}-button" target="_blank">')
                parts.append(f'<img src="{escape(image_url, quote=True)}" alt="{alt}">')
                parts.append("</a>")

        parts.append("</div>")
        return "".join(parts)

    @staticmethod
    def splice_into_email(content: str, buttons_html: str) -> str:
        """Insert buttons before the ticket details section, or append them."""
        position = content.find(TICKET_DETAILS_MARKER)
        if position == -1:
            return content + buttons_html
        return content[:position] + buttons_html + content[position:]
