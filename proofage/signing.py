"""
Request canonicalization and HMAC signing for outbound ProofAge API calls.

Canonical request format:

    JSON (or empty) body:
        <METHOD>/<version>/<endpoint><raw JSON body>

    Multipart body (one or more files):
        <METHOD>/<version>/<endpoint>
        <RFC 3986 query string of the key-sorted form fields>
        <comma-separated, ascending SHA-256 hex digests of the file contents>

The signature is the lowercase hex HMAC-SHA256 of the canonical request,
sent as ``X-HMAC-Signature`` next to ``X-API-Key``.
"""

import hashlib
import hmac
import json
import logging
import os
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote

from proofage.config import SigningConfig
from proofage.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

HEADER_API_KEY = "X-API-Key"
HEADER_SIGNATURE = "X-HMAC-Signature"

HASH_CHUNK_SIZE = 64 * 1024

FileInput = Any  # path, bytes, binary file object, or (filename, fileobj[, content_type])
FormFields = List[Tuple[str, str]]


def build_request_path(version: str, endpoint: str) -> str:
    """Return ``/<version>/<endpoint>`` with leading slashes trimmed from the endpoint."""
    return f"/{version}/{endpoint.lstrip('/')}"


_INTEGER_KEY = re.compile(r"-?[1-9][0-9]*|0")


def _sort_key(key: Any) -> Tuple[int, int, str]:
    # Integer keys ("2", 10) order numerically, ahead of string keys
    if isinstance(key, int) and not isinstance(key, bool):
        return (0, key, "")
    if isinstance(key, str) and _INTEGER_KEY.fullmatch(key):
        return (0, int(key), "")
    return (1, 0, str(key))


def canonicalize_fields(data: Any) -> Any:
    """
    Recursively sort mapping keys at every nesting level.

    Integer-like keys sort numerically (``2`` before ``10``) and ahead of
    other keys, which sort as strings. Lists keep their order; their
    elements are canonicalized in place of the originals. The input is
    never modified.
    """
    if isinstance(data, Mapping):
        return {str(key): canonicalize_fields(data[key]) for key in sorted(data, key=_sort_key)}
    if isinstance(data, (list, tuple)):
        return [canonicalize_fields(item) for item in data]
    return data


def _scalar_to_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def normalize_fields(data: Optional[Mapping[str, Any]]) -> FormFields:
    """
    Flatten form data into ordered ``(name, value)`` string pairs.

    Keys are sorted at every level and nested values use bracket names
    (``meta[source]``, ``tags[0]``). Scalars become the exact strings that
    are transmitted: booleans as ``"1"``/``"0"``, numbers via ``str()``;
    ``None`` values are dropped. ``123`` and ``"123"`` therefore normalize
    to the same pair.

    Args:
        data: Form fields, possibly nested

    Returns:
        List of (name, value) tuples in canonical order
    """
    pairs: FormFields = []

    def walk(prefix: str, value: Any) -> None:
        if isinstance(value, dict):
            for key, item in value.items():
                walk(f"{prefix}[{key}]", item)
        elif isinstance(value, list):
            for index, item in enumerate(value):
                walk(f"{prefix}[{index}]", item)
        else:
            text = _scalar_to_string(value)
            if text is not None:
                pairs.append((prefix, text))

    for key, value in canonicalize_fields(data or {}).items():
        walk(key, value)

    return pairs


def encode_fields(pairs: Iterable[Tuple[str, str]]) -> str:
    """Percent-encode pairs as a query string, keeping only RFC 3986 unreserved characters."""
    return "&".join(f"{quote(name, safe='')}={quote(value, safe='')}" for name, value in pairs)


def _hash_file_object(fileobj: Any) -> str:
    digest = hashlib.sha256()
    seekable = hasattr(fileobj, "seek") and hasattr(fileobj, "tell")
    position = fileobj.tell() if seekable else None
    try:
        if seekable:
            fileobj.seek(0)
        for chunk in iter(lambda: fileobj.read(HASH_CHUNK_SIZE), b""):
            if isinstance(chunk, str):
                raise ValueError("File objects must be opened in binary mode")
            digest.update(chunk)
    finally:
        if position is not None:
            fileobj.seek(position)
    return digest.hexdigest()


def hash_file(file: FileInput) -> str:
    """
    Compute the SHA-256 hex digest of a file's full content.

    Args:
        file: Filesystem path, bytes, binary file object, or a
            ``(filename, fileobj[, content_type])`` tuple

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If a path does not exist
        ValueError: If the input type is not supported
    """
    if isinstance(file, tuple):
        if len(file) < 2:
            raise ValueError("File tuples must be (filename, fileobj[, content_type])")
        return hash_file(file[1])
    if isinstance(file, (bytes, bytearray, memoryview)):
        return hashlib.sha256(bytes(file)).hexdigest()
    if isinstance(file, (str, os.PathLike)):
        with open(file, "rb") as fh:
            return _hash_file_object(fh)
    if hasattr(file, "read"):
        return _hash_file_object(file)
    raise ValueError(f"Unsupported file input: {type(file).__name__}")


def collect_file_hashes(files: Union[Mapping[str, FileInput], Iterable[FileInput]]) -> List[str]:
    """Hash every attachment, in the order given."""
    values = files.values() if isinstance(files, Mapping) else files
    return [hash_file(file) for file in values]


def encode_json_body(body_data: Any) -> str:
    """
    Serialize a JSON body exactly as it is signed and transmitted.

    Empty bodies become ``""``. Strings are taken as already-encoded JSON and
    passed through untouched. Otherwise the output is compact, escapes
    non-ASCII characters, and leaves forward slashes unescaped.
    """
    if body_data is None:
        return ""
    if isinstance(body_data, bytes):
        return body_data.decode("utf-8")
    if isinstance(body_data, str):
        return body_data
    if not body_data:
        return ""
    return json.dumps(body_data, separators=(",", ":"))


def build_canonical_request(
    method: str,
    version: str,
    endpoint: str,
    body_data: Any = None,
    files: Optional[Union[Mapping[str, FileInput], Iterable[FileInput]]] = None,
) -> str:
    """
    Build the canonical request string that gets signed.

    Args:
        method: HTTP method (any case)
        version: API version, e.g. ``v1``
        endpoint: Endpoint relative to the version, e.g. ``verifications``
        body_data: JSON body or, with files, the form fields
        files: Attachments; when non-empty the multipart format is used

    Returns:
        The canonical request string
    """
    canonical_request = method.upper() + build_request_path(version, endpoint)

    if files:
        fields_string = encode_fields(normalize_fields(body_data))
        file_hashes = sorted(collect_file_hashes(files))
        canonical_request += "\n" + fields_string + "\n" + ",".join(file_hashes)
    else:
        canonical_request += encode_json_body(body_data)

    return canonical_request


def compute_hmac_sha256(secret_key: str, message: Union[str, bytes]) -> str:
    """Lowercase hex HMAC-SHA256 of ``message`` under ``secret_key``."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret_key.encode("utf-8"), message, hashlib.sha256).hexdigest()


def compute_request_signature(
    secret_key: str,
    method: str,
    version: str,
    endpoint: str,
    body_data: Any = None,
    files: Optional[Union[Mapping[str, FileInput], Iterable[FileInput]]] = None,
) -> Tuple[str, str]:
    """
    Compute the HMAC signature for an outbound request.

    Returns:
        Tuple of (signature, canonical_string) where:
        - signature: 64-character lowercase hex HMAC-SHA256
        - canonical_string: The canonical string that was signed (for debugging)
    """
    canonical_string = build_canonical_request(method, version, endpoint, body_data, files)
    return compute_hmac_sha256(secret_key, canonical_string), canonical_string


class RequestSigner:
    """
    Signs outbound requests with a workspace's credentials.

    Stateless apart from the immutable config: signing the same inputs
    twice, including on a transport retry, yields the same signature.

    Raises:
        ConfigurationError: If ``api_key`` or ``secret_key`` is empty
    """

    def __init__(self, config: SigningConfig):
        if not config.api_key:
            raise ConfigurationError("API key is required")
        if not config.secret_key:
            raise ConfigurationError("Secret key is required")
        self.config = config

    def canonical_request(self, method: str, endpoint: str, body_data: Any = None, files: Any = None) -> str:
        return build_canonical_request(method, self.config.version, endpoint, body_data, files)

    def sign(self, method: str, endpoint: str, body_data: Any = None, files: Any = None) -> str:
        """Return the hex signature for the request."""
        signature, _ = compute_request_signature(
            self.config.secret_key,
            method,
            self.config.version,
            endpoint,
            body_data,
            files,
        )
        logger.debug("Signed %s %s", method.upper(), build_request_path(self.config.version, endpoint))
        return signature

    def signed_headers(self, method: str, endpoint: str, body_data: Any = None, files: Any = None) -> Dict[str, str]:
        """
        Headers to attach to the outbound request.

        Returns:
            Dictionary with ``X-API-Key`` and ``X-HMAC-Signature``
        """
        return {
            HEADER_API_KEY: self.config.api_key,
            HEADER_SIGNATURE: self.sign(method, endpoint, body_data, files),
        }
