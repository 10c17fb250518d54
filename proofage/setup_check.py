"""
Setup diagnostics: checks that a prefix is configured and can reach its workspace.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from proofage.client import ClientFactory
from proofage.config import DEFAULT_PREFIX, ConfigResolver
from proofage.exceptions import ProofAgeError

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("api_key", "secret_key", "base_url")


@dataclass
class SetupReport:
    """Result of :func:`verify_setup`."""

    prefix: str
    missing: List[str] = field(default_factory=list)
    workspace_ok: bool = False
    webhook_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def config_ok(self) -> bool:
        return not self.missing

    @property
    def webhook_configured(self) -> bool:
        return bool(self.webhook_url)

    @property
    def ok(self) -> bool:
        return self.config_ok and self.workspace_ok


def verify_setup(
    resolver: ConfigResolver,
    prefix: str = DEFAULT_PREFIX,
    session: Optional[requests.Session] = None,
) -> SetupReport:
    """
    Verify configuration for ``prefix`` and test the workspace connection.

    API and network failures are recorded in the report rather than raised.

    Args:
        resolver: Configuration resolver
        prefix: Settings prefix to check
        session: Optional HTTP session for the workspace call

    Returns:
        SetupReport
    """
    report = SetupReport(prefix=prefix)

    config = resolver.resolve(prefix)
    report.missing = config.missing_keys(REQUIRED_KEYS)
    if report.missing:
        logger.error("Missing configuration settings for '%s': %s", prefix, ", ".join(report.missing))
        return report

    try:
        data = ClientFactory(resolver).make(prefix, session=session).workspace().get()
    except (ProofAgeError, requests.RequestException) as e:
        report.error = str(e)
        logger.error("Workspace connection failed for '%s': %s", prefix, e)
        return report

    if data is None:
        report.error = "Failed to retrieve workspace data"
        return report

    report.workspace_ok = True
    report.webhook_url = data.get("webhook_url") or None

    if report.webhook_configured:
        logger.info("Workspace '%s' webhook URL: %s", prefix, report.webhook_url)
    else:
        logger.warning("Workspace '%s' has no webhook URL configured", prefix)

    return report
