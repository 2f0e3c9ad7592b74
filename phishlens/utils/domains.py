"""Domain normalization utilities."""

from __future__ import annotations

import ipaddress
from urllib.parse import urlparse

import tldextract

# Bundled public suffix snapshot only; analysis must not block on a PSL download.
_extract = tldextract.TLDExtract(suffix_list_urls=())


def extract_hostname(value: str) -> str:
    """Return the lower-cased hostname of a URL or bare host (no port, no brackets)."""
    raw = (value or "").strip()
    if not raw:
        return ""
    candidate = raw if "://" in raw else f"https://{raw}"
    try:
        host = urlparse(candidate).hostname or ""
    except ValueError:
        host = ""
    return host.strip().lower().strip(".")


def canonicalize_domain(value: str) -> str:
    """
    Normalize a domain/URL to a canonical host key.

    - Lowercase
    - Strip leading "www."
    - Ignore port/path/query/fragment
    """
    host = extract_hostname(value)
    if host.startswith("www.") and len(host) > 4:
        host = host[4:]
    return host


def is_ip_literal(host: str) -> bool:
    """True if host is an IPv4 or IPv6 address literal."""
    try:
        ipaddress.ip_address((host or "").strip("[]"))
    except ValueError:
        return False
    return True


def split_domain(host: str) -> tuple[str, str]:
    """Return (registered_domain, public suffix) for a hostname."""
    if not host or is_ip_literal(host):
        return host or "", ""
    extracted = _extract(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower(), extracted.suffix.lower()
    return host.lower(), extracted.suffix.lower()


def registered_domain(value: str) -> str:
    """Return the registrable domain for a host or URL (best-effort)."""
    host = canonicalize_domain(value)
    if not host:
        return ""
    return split_domain(host)[0]


def domain_matches(domain: str, candidates: set[str] | frozenset[str]) -> bool:
    """Check if a host, or any parent domain of it, is in the candidate set."""
    if not candidates:
        return False
    host = canonicalize_domain(domain)
    if not host:
        return False
    labels = host.split(".")
    for i in range(len(labels) - 1):
        if ".".join(labels[i:]) in candidates:
            return True
    return host in candidates
