"""
HTTP client for the ProofAge API.

Every request is signed with :class:`proofage.signing.RequestSigner`. The
bytes that were signed are the bytes sent: JSON bodies go out exactly as
encoded for the signature, and multipart form fields go out in their
normalized string form.

Usage:
    from proofage import ClientFactory, ConfigResolver

    client = ClientFactory(ConfigResolver.from_env()).make()
    verification = client.verifications().create({"callback_url": "https://example.com/webhook"})
"""

import logging
import os
from contextlib import ExitStack
from typing import Any, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from proofage.config import DEFAULT_PREFIX, ConfigResolver, SigningConfig
from proofage.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ProofAgeError,
    ValidationError,
)
from proofage.resources import VerificationResource, WorkspaceResource
from proofage.signing import RequestSigner, encode_json_body, normalize_fields

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = (500, 502, 503, 504)


def _build_retry(config: SigningConfig) -> Retry:
    # retry_attempts counts the first attempt too
    retries = max(config.retry_attempts - 1, 0)
    return Retry(
        total=retries,
        backoff_factor=config.retry_delay / 1000.0,
        status_forcelist=RETRY_STATUS_CODES,
        allowed_methods=None,
        raise_on_status=False,
    )


def _rewind(fileobj: Any) -> Any:
    # The signature covers the full content, so the upload must too
    if hasattr(fileobj, "read") and hasattr(fileobj, "seek"):
        fileobj.seek(0)
    return fileobj


def _upload_part(name: str, file: Any, stack: ExitStack) -> Any:
    if isinstance(file, tuple):
        if len(file) >= 2:
            _rewind(file[1])
        return file
    if isinstance(file, (bytes, bytearray, memoryview)):
        return (name, bytes(file))
    if isinstance(file, (str, os.PathLike)):
        fh = stack.enter_context(open(file, "rb"))
        return (os.path.basename(os.fspath(file)), fh)
    filename = os.path.basename(str(getattr(file, "name", "") or name))
    return (filename, _rewind(file))


class ProofAgeClient:
    """
    Signed HTTP client bound to one workspace configuration.

    Args:
        config: Resolved configuration
        session: Optional ``requests.Session`` (a retrying one is created otherwise)

    Raises:
        ConfigurationError: If api_key, secret_key or base_url is empty
    """

    def __init__(self, config: SigningConfig, session: Optional[requests.Session] = None):
        self.signer = RequestSigner(config)
        if not config.base_url:
            raise ConfigurationError("Base URL is required")
        self.config = config

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=_build_retry(config))
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        session.headers["Accept"] = "application/json"
        self.session = session

    def workspace(self) -> WorkspaceResource:
        return WorkspaceResource(self)

    def verifications(self, verification_id: Optional[str] = None) -> VerificationResource:
        return VerificationResource(self, verification_id)

    def build_url(self, endpoint: str) -> str:
        """``<base_url>/<version>/<endpoint>`` without duplicate slashes."""
        base_url = self.config.base_url.rstrip("/")
        return f"{base_url}/{self.config.version}/{endpoint.lstrip('/')}"

    def make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
    ) -> requests.Response:
        """
        Send a signed request.

        Args:
            method: HTTP method
            endpoint: Endpoint relative to the API version
            data: JSON body, or form fields when ``files`` is given
            files: Attachments keyed by form field name

        Returns:
            The successful response

        Raises:
            AuthenticationError: On HTTP 401
            ValidationError: On HTTP 422
            ProofAgeError: On any other non-2xx status
        """
        method = method.upper()
        url = self.build_url(endpoint)
        headers = self.signer.signed_headers(method, endpoint, data, files)

        with ExitStack() as stack:
            if files:
                upload = {name: _upload_part(name, file, stack) for name, file in files.items()}
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    data=normalize_fields(data),
                    files=upload,
                    timeout=self.config.timeout,
                )
            else:
                body = encode_json_body(data)
                if body:
                    headers["Content-Type"] = "application/json"
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    data=body.encode("utf-8") if body else None,
                    timeout=self.config.timeout,
                )

        return self.handle_response(response)

    def handle_response(self, response: requests.Response) -> requests.Response:
        if response.ok:
            return response

        logger.warning("ProofAge API request failed: %s -> %s", response.url, response.status_code)

        if response.status_code == 401:
            raise AuthenticationError.from_response(response)
        if response.status_code == 422:
            raise ValidationError.from_response(response)
        raise ProofAgeError.from_response(response)


class ClientFactory:
    """Builds clients for named configuration prefixes."""

    def __init__(self, resolver: ConfigResolver):
        self.resolver = resolver

    def make(self, prefix: str = DEFAULT_PREFIX, session: Optional[requests.Session] = None) -> ProofAgeClient:
        return ProofAgeClient(self.resolver.resolve(prefix), session=session)
