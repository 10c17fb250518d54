"""
ProofAge API client with HMAC request signing and webhook verification.

Basic Usage (client):
    from proofage import ClientFactory, ConfigResolver

    resolver = ConfigResolver.from_env()  # PROOFAGE_API_KEY, PROOFAGE_SECRET_KEY, ...
    client = ClientFactory(resolver).make()

    verification = client.verifications().create(
        {"callback_url": "https://example.com/webhook"}
    )

Signing only:
    from proofage import RequestSigner

    signer = RequestSigner(resolver.resolve())
    headers = signer.signed_headers("POST", "verifications", {"callback_url": "..."})

Webhooks (server side):
    from proofage import WebhookGate

    result = WebhookGate(resolver.resolve("services.proofage_seller")).check(headers, raw_body)
    if not result.ok:
        return result.to_response()
"""

from proofage.config import (
    DEFAULT_CONFIG,
    DEFAULT_PREFIX,
    ConfigResolver,
    SigningConfig,
)

from proofage.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ProofAgeError,
    ValidationError,
    WebhookVerificationError,
)

from proofage.signing import (
    RequestSigner,
    build_canonical_request,
    compute_request_signature,
)

from proofage.webhook import (
    WebhookErrorCode,
    WebhookGate,
    WebhookResult,
    WebhookSignatureVerifier,
    validate_webhook_signature,
    verify_webhook,
)

from proofage.client import (
    ClientFactory,
    ProofAgeClient,
)

from proofage.setup_check import (
    SetupReport,
    verify_setup,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Configuration
    "DEFAULT_CONFIG",
    "DEFAULT_PREFIX",
    "ConfigResolver",
    "SigningConfig",
    # Errors
    "AuthenticationError",
    "ConfigurationError",
    "ProofAgeError",
    "ValidationError",
    "WebhookVerificationError",
    # Request signing
    "RequestSigner",
    "build_canonical_request",
    "compute_request_signature",
    # Webhooks
    "WebhookErrorCode",
    "WebhookGate",
    "WebhookResult",
    "WebhookSignatureVerifier",
    "validate_webhook_signature",
    "verify_webhook",
    # Client
    "ClientFactory",
    "ProofAgeClient",
    # Diagnostics
    "SetupReport",
    "verify_setup",
]
