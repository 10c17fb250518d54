"""
Inbound webhook signature verification.

ProofAge signs each webhook delivery with:

    X-HMAC-Signature: hex(HMAC-SHA256(secret_key, "<timestamp>.<raw body>"))
    X-Timestamp:      unix seconds
    X-Auth-Client:    the workspace api_key

Verification runs over the raw, unparsed body bytes. Parsing and
re-serializing the JSON before hashing changes the digest.

Usage (AWS Lambda behind API Gateway):
    from proofage.webhook import verify_webhook

    @verify_webhook(config)
    def handler(event, context):
        ...
"""

import base64
import binascii
import functools
import hmac
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from proofage.config import DEFAULT_CONFIG, SigningConfig
from proofage.exceptions import WebhookVerificationError
from proofage.signing import compute_hmac_sha256

logger = logging.getLogger(__name__)

HEADER_SIGNATURE = "X-HMAC-Signature"
HEADER_TIMESTAMP = "X-Timestamp"
HEADER_AUTH_CLIENT = "X-Auth-Client"

DEFAULT_TOLERANCE = DEFAULT_CONFIG["webhook_tolerance"]

HTTP_UNAUTHORIZED = 401
HTTP_CONFIGURATION_ERROR = 418


class WebhookErrorCode(str, Enum):
    """Stable rejection codes returned to webhook callers."""

    MISSING_SIGNATURE = "MISSING_SIGNATURE"
    MISSING_TIMESTAMP = "MISSING_TIMESTAMP"
    MISSING_AUTH_CLIENT = "MISSING_AUTH_CLIENT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_AUTH_CLIENT = "INVALID_AUTH_CLIENT"
    TIMESTAMP_TOO_OLD = "TIMESTAMP_TOO_OLD"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


ERROR_MESSAGES = {
    WebhookErrorCode.MISSING_SIGNATURE: f"{HEADER_SIGNATURE} header is required",
    WebhookErrorCode.MISSING_TIMESTAMP: f"{HEADER_TIMESTAMP} header is required",
    WebhookErrorCode.MISSING_AUTH_CLIENT: f"{HEADER_AUTH_CLIENT} header is required",
    WebhookErrorCode.CONFIGURATION_ERROR: "Webhook verification is not configured",
    WebhookErrorCode.INVALID_AUTH_CLIENT: f"{HEADER_AUTH_CLIENT} header is invalid",
    WebhookErrorCode.TIMESTAMP_TOO_OLD: "Timestamp is too old",
    WebhookErrorCode.INVALID_SIGNATURE: "HMAC signature is invalid",
}


def _to_bytes(raw_body: Union[str, bytes, None]) -> bytes:
    if raw_body is None:
        return b""
    if isinstance(raw_body, str):
        return raw_body.encode("utf-8")
    return bytes(raw_body)


class WebhookSignatureVerifier:
    """
    Computes and checks webhook signatures for one secret key.

    Args:
        secret_key: The workspace secret key
        tolerance: Accepted clock difference in seconds, in either direction
    """

    def __init__(self, secret_key: str, tolerance: int = DEFAULT_TOLERANCE):
        self._secret_key = secret_key
        self.tolerance = tolerance

    def generate_signature(self, raw_body: Union[str, bytes, None], timestamp: int) -> str:
        """Hex HMAC-SHA256 of ``"<timestamp>." + raw_body``."""
        payload = f"{int(timestamp)}.".encode("ascii") + _to_bytes(raw_body)
        return compute_hmac_sha256(self._secret_key, payload)

    def verify(self, raw_body: Union[str, bytes, None], timestamp: int, signature: str) -> bool:
        """Constant-time check of ``signature`` against the expected value."""
        expected = self.generate_signature(raw_body, timestamp)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))

    def is_timestamp_valid(self, timestamp: int, tolerance: Optional[int] = None) -> bool:
        """True iff ``|now - timestamp| <= tolerance``; stale and future timestamps both fail."""
        if tolerance is None:
            tolerance = self.tolerance
        return abs(int(time.time()) - int(timestamp)) <= tolerance


@dataclass(frozen=True)
class WebhookResult:
    """Outcome of a webhook check: accepted, or rejected with a code."""

    error_code: Optional[WebhookErrorCode] = None
    message: str = ""
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.error_code is None

    @classmethod
    def accept(cls) -> "WebhookResult":
        return cls()

    @classmethod
    def reject(cls, error_code: WebhookErrorCode) -> "WebhookResult":
        status = (
            HTTP_CONFIGURATION_ERROR
            if error_code is WebhookErrorCode.CONFIGURATION_ERROR
            else HTTP_UNAUTHORIZED
        )
        return cls(error_code=error_code, message=ERROR_MESSAGES[error_code], status_code=status)

    def to_response(self) -> Dict[str, Any]:
        """API Gateway style response for a rejection."""
        body = {"error": {"code": self.error_code.value, "message": self.message}} if self.error_code else {}
        return {
            "statusCode": self.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(body),
        }

    def raise_for_error(self) -> None:
        """Raise :class:`WebhookVerificationError` if this result is a rejection."""
        if self.error_code is not None:
            raise WebhookVerificationError(self.error_code.value, self.message, self.status_code)


def _get_header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


class WebhookGate:
    """
    Ordered webhook checks for one workspace configuration.

    The first failing check wins:

        missing signature -> missing timestamp -> missing auth client
        -> configuration incomplete -> auth client mismatch
        -> timestamp outside tolerance -> signature mismatch

    Args:
        config: Resolved configuration of the workspace receiving the webhook
    """

    def __init__(self, config: SigningConfig):
        self.config = config

    def check(self, headers: Mapping[str, Any], raw_body: Union[str, bytes, None]) -> WebhookResult:
        """
        Run all checks against an inbound request.

        Args:
            headers: Request headers (case-insensitive names)
            raw_body: The raw request body exactly as received

        Returns:
            WebhookResult
        """
        provided_signature = _get_header(headers, HEADER_SIGNATURE)
        timestamp_header = _get_header(headers, HEADER_TIMESTAMP)
        auth_client = _get_header(headers, HEADER_AUTH_CLIENT)

        if not provided_signature:
            return self._reject(WebhookErrorCode.MISSING_SIGNATURE)
        if not timestamp_header:
            return self._reject(WebhookErrorCode.MISSING_TIMESTAMP)
        if not auth_client:
            return self._reject(WebhookErrorCode.MISSING_AUTH_CLIENT)

        if not self.config.secret_key or not self.config.api_key:
            logger.error("Webhook verification failed: secret key or API key is not configured")
            return WebhookResult.reject(WebhookErrorCode.CONFIGURATION_ERROR)

        if not hmac.compare_digest(self.config.api_key.encode("utf-8"), str(auth_client).encode("utf-8")):
            return self._reject(WebhookErrorCode.INVALID_AUTH_CLIENT)

        verifier = WebhookSignatureVerifier(self.config.secret_key, self.config.webhook_tolerance)

        try:
            timestamp = int(str(timestamp_header).strip())
        except ValueError:
            return self._reject(WebhookErrorCode.TIMESTAMP_TOO_OLD)

        if not verifier.is_timestamp_valid(timestamp):
            return self._reject(WebhookErrorCode.TIMESTAMP_TOO_OLD)

        if not verifier.verify(raw_body, timestamp, str(provided_signature)):
            return self._reject(WebhookErrorCode.INVALID_SIGNATURE)

        return WebhookResult.accept()

    def require(self, headers: Mapping[str, Any], raw_body: Union[str, bytes, None]) -> None:
        """
        Like :meth:`check`, but raises on rejection.

        Raises:
            WebhookVerificationError: With the rejection code and status
        """
        self.check(headers, raw_body).raise_for_error()

    @staticmethod
    def _reject(error_code: WebhookErrorCode) -> WebhookResult:
        logger.warning("Rejected webhook: %s", error_code.value)
        return WebhookResult.reject(error_code)


def _event_body(event: Dict[str, Any]) -> Optional[bytes]:
    """Raw body of an API Gateway event, or None if its base64 body does not decode."""
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except binascii.Error:
            logger.warning("Webhook body is flagged as base64 but does not decode")
            return None
    return _to_bytes(body)


def validate_webhook_signature(
    event: Dict[str, Any],
    config: SigningConfig,
) -> Union[bool, Dict[str, Any]]:
    """
    Validate a webhook from an AWS API Gateway event.

    A body flagged as base64 that does not decode cannot have been signed;
    once the header checks pass it is rejected as ``INVALID_SIGNATURE``.

    Args:
        event: API Gateway event with headers and body
        config: Resolved configuration of the receiving workspace

    Returns:
        True if the webhook is valid
        Dict with statusCode and body if validation fails
    """
    headers = event.get("headers", {}) or {}
    raw_body = _event_body(event)
    result = WebhookGate(config).check(headers, raw_body if raw_body is not None else b"")

    if raw_body is None and (result.ok or result.error_code == WebhookErrorCode.INVALID_SIGNATURE):
        result = WebhookResult.reject(WebhookErrorCode.INVALID_SIGNATURE)

    if result.ok:
        return True
    return result.to_response()


def verify_webhook(config: SigningConfig) -> Callable:
    """
    Decorator that runs the webhook checks ahead of a Lambda handler.

    Rejected events never reach the handler; the rejection response is
    returned instead.
    """

    def decorator(handler: Callable) -> Callable:
        @functools.wraps(handler)
        def wrapper(event: Dict[str, Any], context: Any = None) -> Any:
            result = validate_webhook_signature(event, config)
            if result is not True:
                return result
            return handler(event, context)

        return wrapper

    return decorator
