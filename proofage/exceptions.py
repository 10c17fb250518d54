"""
Exception hierarchy for the ProofAge client and webhook verification.

Configuration errors are kept distinct from authentication and webhook
verification failures so callers can tell a misconfigured system apart
from a forged or rejected request.
"""

from typing import Any, Dict, Optional


class ProofAgeError(Exception):
    """Base error for ProofAge API and signing failures."""

    def __init__(
        self,
        message: str = "",
        status_code: Optional[int] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response
        self.error_data: Dict[str, Any] = {}

        if response is not None:
            self._parse_error_data()

    @classmethod
    def from_response(cls, response: Any, message: str = "") -> "ProofAgeError":
        """
        Build an error from an HTTP response.

        The remote ``error.message`` takes precedence over ``message``.

        Args:
            response: A ``requests.Response`` (or compatible object)
            message: Fallback message when the body carries none

        Returns:
            An instance of the class this was called on
        """
        error_message = message or "ProofAge API request failed"

        data = _json_or_none(response)
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                error_message = error["message"]

        return cls(error_message, status_code=response.status_code, response=response)

    @property
    def error_code(self) -> Optional[str]:
        """Remote machine-readable error code, if the API sent one."""
        return self.error_data.get("code")

    def _parse_error_data(self) -> None:
        data = _json_or_none(self.response)
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            self.error_data = data["error"]


class AuthenticationError(ProofAgeError):
    """The API rejected our credentials or signature (HTTP 401)."""


class ValidationError(ProofAgeError):
    """The API rejected the request payload (HTTP 422)."""

    @property
    def errors(self) -> Dict[str, Any]:
        """Field-level validation errors from the response body."""
        data = _json_or_none(self.response)
        if isinstance(data, dict) and isinstance(data.get("errors"), dict):
            return data["errors"]
        return {}


class ConfigurationError(ProofAgeError):
    """Required settings (api key, secret key, base URL) are missing."""


class WebhookVerificationError(ProofAgeError):
    """
    An inbound webhook was rejected.

    Attributes:
        error_code: One of the webhook rejection codes (e.g. ``INVALID_SIGNATURE``)
        status_code: HTTP status to answer with (401, or 418 for configuration errors)
    """

    def __init__(
        self,
        error_code: Optional[str],
        message: str,
        status_code: int = 401,
        response: Any = None,
    ):
        super().__init__(message, status_code=status_code, response=response)
        self._webhook_error_code = error_code

    @classmethod
    def from_response(cls, response: Any, message: str = "") -> "WebhookVerificationError":
        """Build the error from a rejection response carrying ``error.code`` and ``error.message``."""
        error_code = None
        error_message = message or "Webhook verification failed"

        data = _json_or_none(response)
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            error_code = data["error"].get("code")
            error_message = data["error"].get("message") or error_message

        return cls(error_code, error_message, status_code=response.status_code, response=response)

    @property
    def error_code(self) -> Optional[str]:
        return self._webhook_error_code


def _json_or_none(response: Any) -> Any:
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        return None
