"""SSL posture provider."""

from __future__ import annotations

import asyncio
import logging
import socket
import ssl
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import urlparse

from ..config import Config
from ..constants import SignalKind
from ..errors import ProviderUnavailableError
from .features import UrlFeatures
from .signals import SSLSignal

logger = logging.getLogger(__name__)

# Subject attributes only present on extended-validation certificates.
EV_SUBJECT_FIELDS = {"businessCategory", "jurisdictionCountryName", "jurisdictionC"}

CertFetcher = Callable[[str, int, float], dict]


class UntrustedCertificateError(Exception):
    """Peer certificate failed verification against the default trust store."""


def fetch_certificate(host: str, port: int, timeout: float) -> dict:
    """Fetch the verified peer certificate (blocking, run in a worker thread)."""
    context = ssl.create_default_context()
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            with context.wrap_socket(sock, server_hostname=host) as ssock:
                return ssock.getpeercert() or {}
    except ssl.SSLCertVerificationError as exc:
        raise UntrustedCertificateError(exc.verify_message or str(exc)) from exc


def _parse_cert_time(value: str) -> str:
    if not value:
        return ""
    try:
        parsed = datetime.strptime(value, "%b %d %H:%M:%S %Y %Z").replace(tzinfo=timezone.utc)
    except ValueError:
        return value
    return parsed.isoformat()


def assess_certificate(cert: dict) -> SSLSignal:
    """Grade a verified certificate: EV is excellent, anything else good."""
    issuer = dict(x[0] for x in cert.get("issuer", []))
    subject = dict(x[0] for x in cert.get("subject", []))
    is_ev = bool(EV_SUBJECT_FIELDS & set(subject))
    return SSLSignal(
        has_ssl=True,
        security_level="excellent" if is_ev else "good",
        issuer=issuer.get("organizationName", issuer.get("commonName", "Unknown")),
        valid_from=_parse_cert_time(cert.get("notBefore", "")),
        valid_until=_parse_cert_time(cert.get("notAfter", "")),
        is_ev=is_ev,
        is_trusted=True,
        reason="Extended validation certificate" if is_ev else "Valid certificate",
    )


class SSLPostureProvider:
    name = SignalKind.SSL.value

    def __init__(self, fetcher: Optional[CertFetcher] = None):
        self._fetch = fetcher or fetch_certificate

    async def check(self, url: str, features: UrlFeatures, config: Config) -> SSLSignal:
        if not features.is_https:
            return SSLSignal(has_ssl=False, security_level="poor", reason="No HTTPS connection")

        port = urlparse(features.url).port or 443
        try:
            cert = await asyncio.to_thread(
                self._fetch, features.hostname, port, config.provider_timeout
            )
        except UntrustedCertificateError as exc:
            logger.debug(f"Untrusted certificate for {features.hostname}: {exc}")
            return SSLSignal(
                has_ssl=True,
                security_level="poor",
                is_trusted=False,
                reason=f"Untrusted certificate: {exc}",
            )
        except OSError as exc:
            raise ProviderUnavailableError(self.name, f"TLS connection failed: {exc}") from exc

        return assess_certificate(cert)
