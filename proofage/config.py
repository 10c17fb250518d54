"""
Configuration resolution for ProofAge credentials.

A single deployment may talk to several ProofAge workspaces. Each workspace
is a named prefix with its own ``api_key`` and ``secret_key``; shared
settings (base URL, API version, timeouts, webhook tolerance) fall back to
the default prefix when a workspace does not override them.

Usage:
    from proofage.config import ConfigResolver

    resolver = ConfigResolver({
        "proofage": {"api_key": "key", "secret_key": "secret"},
        "services.proofage_seller": {"api_key": "seller", "secret_key": "s2"},
    })
    config = resolver.resolve("services.proofage_seller")
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

DEFAULT_PREFIX = "proofage"

DEFAULT_CONFIG: Dict[str, Any] = {
    "base_url": "https://api.proofage.xyz",
    "version": "v1",
    "timeout": 30,
    "retry_attempts": 3,
    "retry_delay": 1000,  # milliseconds
    "webhook_tolerance": 300,  # seconds
}

# Never inherited from another prefix
TENANT_KEYS = ("api_key", "secret_key")
SHARED_KEYS = tuple(DEFAULT_CONFIG)
INTEGER_KEYS = ("timeout", "retry_attempts", "retry_delay", "webhook_tolerance")


@dataclass(frozen=True)
class SigningConfig:
    """Resolved credentials and settings for one workspace."""

    api_key: str = ""
    secret_key: str = field(default="", repr=False)
    base_url: str = DEFAULT_CONFIG["base_url"]
    version: str = DEFAULT_CONFIG["version"]
    webhook_tolerance: int = DEFAULT_CONFIG["webhook_tolerance"]
    timeout: int = DEFAULT_CONFIG["timeout"]
    retry_attempts: int = DEFAULT_CONFIG["retry_attempts"]
    retry_delay: int = DEFAULT_CONFIG["retry_delay"]

    def missing_keys(self, required: Iterable[str] = ("api_key", "secret_key", "base_url")) -> List[str]:
        """Return the names of required settings that are empty."""
        return [name for name in required if not getattr(self, name)]


class ConfigResolver:
    """
    Resolves a :class:`SigningConfig` per prefix from nested settings.

    Args:
        settings: Mapping of prefix -> settings mapping
        default_prefix: Prefix whose shared settings act as the fallback
    """

    def __init__(
        self,
        settings: Optional[Mapping[str, Mapping[str, Any]]] = None,
        default_prefix: str = DEFAULT_PREFIX,
    ):
        self._settings = {prefix: dict(values) for prefix, values in (settings or {}).items()}
        self.default_prefix = default_prefix

    @classmethod
    def from_env(
        cls,
        prefixes: Iterable[str] = (DEFAULT_PREFIX,),
        environ: Optional[Mapping[str, str]] = None,
        default_prefix: str = DEFAULT_PREFIX,
    ) -> "ConfigResolver":
        """
        Build a resolver from environment variables.

        Variables are named ``<PREFIX>_<KEY>`` with the prefix upper-cased and
        dots replaced by underscores, e.g. ``PROOFAGE_API_KEY`` or
        ``SERVICES_PROOFAGE_SELLER_SECRET_KEY``.

        Args:
            prefixes: Prefixes to load (the default prefix is always loaded)
            environ: Environment mapping (default: ``os.environ``)
            default_prefix: Prefix used for shared fallbacks

        Returns:
            ConfigResolver over the values found
        """
        if environ is None:
            environ = os.environ

        names = list(prefixes)
        if default_prefix not in names:
            names.append(default_prefix)

        settings: Dict[str, Dict[str, Any]] = {}
        for prefix in names:
            env_prefix = prefix.replace(".", "_").upper()
            values = {}
            for key in TENANT_KEYS + SHARED_KEYS:
                value = environ.get(f"{env_prefix}_{key.upper()}")
                if value not in (None, ""):
                    values[key] = value
            settings[prefix] = values

        return cls(settings, default_prefix=default_prefix)

    def resolve(self, prefix: Optional[str] = None) -> SigningConfig:
        """
        Resolve the configuration for ``prefix``.

        ``api_key`` and ``secret_key`` come from the exact prefix only; a
        workspace without its own secret resolves to an empty secret rather
        than borrowing another workspace's. Shared settings fall back to the
        default prefix and then to :data:`DEFAULT_CONFIG`.

        Args:
            prefix: Settings prefix (default: the resolver's default prefix)

        Returns:
            SigningConfig

        Raises:
            ValueError: If an integer setting cannot be parsed
        """
        prefix = prefix or self.default_prefix
        own = self._settings.get(prefix, {})
        default = self._settings.get(self.default_prefix, {})

        values: Dict[str, Any] = {key: own.get(key) or "" for key in TENANT_KEYS}

        for key in SHARED_KEYS:
            value = own.get(key)
            if value is None:
                value = default.get(key)
            if value is None:
                value = DEFAULT_CONFIG[key]
            if key in INTEGER_KEYS:
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise ValueError(f"Setting '{prefix}.{key}' must be an integer, got {value!r}")
            values[key] = value

        return SigningConfig(**values)

    def prefixes(self) -> List[str]:
        """List the prefixes this resolver knows about."""
        return sorted(self._settings)
