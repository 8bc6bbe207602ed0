"""
Error taxonomy for pass extraction and creation.
"""
from typing import Optional


class PassBridgeError(Exception):
    """Base exception; ``code`` is the stable identifier reported to callers."""
    code = "error"


class ConfigurationError(PassBridgeError):
    """Client hash or template hash is missing."""
    code = "configuration_error"


class ExtractionEmpty(PassBridgeError):
    """Required order, event or attendee data is absent."""
    code = "extraction_empty"


class NetworkError(PassBridgeError):
    """Transport-level failure or timeout talking to the provider."""
    code = "network_error"


class ApiStatusError(PassBridgeError):
    """Provider answered with a status other than 200."""
    code = "api_status_error"

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"PassSource API returned status code: {status_code}")


class ResponseParseError(PassBridgeError):
    """Provider body is not a JSON object."""
    code = "response_parse_error"


class ApiLogicError(PassBridgeError):
    """Provider body lacks the success flag or the pass URL."""
    code = "api_logic_error"


class CreationInProgressError(PassBridgeError):
    """Another worker holds the creation lock for this attendee."""
    code = "creation_in_progress"


class RecordStoreError(PassBridgeError):
    """Pass record could not be written to order metadata."""
    code = "record_store_error"
