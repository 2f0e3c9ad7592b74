"""Feature extraction from a URL and an optional page snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional
from urllib.parse import urlparse

from ..config import DEFAULT_MISSPELLED_DOMAINS, DEFAULT_SUSPICIOUS_KEYWORDS
from ..constants import MAX_TEXT_CHARS
from ..errors import InvalidUrlError
from ..utils.domains import is_ip_literal, split_domain
from .page_text import normalize_text, parse_page

NETWORK_SCHEMES = {"http", "https", "ftp", "ftps", "ws", "wss"}


@dataclass(frozen=True)
class PageSnapshot:
    """Page content captured by the caller (browser, crawler, test)."""

    html: str = ""
    text: Optional[str] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class ContentFeatures:
    """Counts derived from a page snapshot."""

    form_count: int = 0
    input_count: int = 0
    password_input_count: int = 0
    link_count: int = 0
    external_link_count: int = 0
    external_link_ratio: float = 0.0
    hidden_field_count: int = 0
    iframe_count: int = 0
    title: str = ""
    favicon_href: Optional[str] = None
    external_form_services: tuple[str, ...] = ()
    text_excerpt: str = ""


@dataclass(frozen=True)
class UrlFeatures:
    """Structural features of one URL, derived once per analysis."""

    url: str
    scheme: str
    hostname: str
    url_length: int
    domain_length: int
    subdomain_count: int
    has_ip: bool
    has_at_symbol: bool
    has_double_slash: bool
    dot_count: int
    is_https: bool
    is_data_uri: bool
    suspicious_pattern_count: int
    suspicious_patterns: tuple[str, ...]
    tld: str
    registered_domain: str
    misspelling_matches: tuple[tuple[str, str], ...] = ()
    content: Optional[ContentFeatures] = None

    @property
    def page_text(self) -> str:
        return self.content.text_excerpt if self.content else ""


def _parse(url: str):
    raw = (url or "").strip()
    if not raw:
        raise InvalidUrlError(url, "Empty URL")
    try:
        parsed = urlparse(raw)
        hostname = parsed.hostname or ""
    except ValueError as exc:
        raise InvalidUrlError(url, str(exc)) from exc

    scheme = (parsed.scheme or "").lower()
    if not scheme:
        raise InvalidUrlError(url, "Missing URL scheme")
    if scheme in NETWORK_SCHEMES and not hostname:
        raise InvalidUrlError(url, "Missing hostname")
    return raw, scheme, hostname.lower().strip(".")


def find_keywords(url: str, keywords: Iterable[str]) -> tuple[str, ...]:
    """Return the keywords that occur in the lower-cased URL, in list order."""
    lowered = url.lower()
    return tuple(k for k in keywords if k and k in lowered)


def find_misspellings(
    hostname: str, table: Mapping[str, Iterable[str]]
) -> tuple[tuple[str, str], ...]:
    """Return (brand, variant) pairs found in the hostname, one per brand."""
    matches = []
    for brand, variants in table.items():
        for variant in variants:
            if variant and variant in hostname:
                matches.append((brand, variant))
                break
    return tuple(matches)


def _content_features(page_url: str, snapshot: PageSnapshot) -> ContentFeatures:
    structure = parse_page(snapshot.html, page_url)
    text = normalize_text(snapshot.text, MAX_TEXT_CHARS) if snapshot.text else structure.text
    ratio = (
        structure.external_link_count / structure.link_count if structure.link_count else 0.0
    )
    return ContentFeatures(
        form_count=structure.form_count,
        input_count=structure.input_count,
        password_input_count=structure.password_input_count,
        link_count=structure.link_count,
        external_link_count=structure.external_link_count,
        external_link_ratio=round(ratio, 4),
        hidden_field_count=structure.hidden_field_count,
        iframe_count=structure.iframe_count,
        title=snapshot.title or structure.title,
        favicon_href=structure.favicon_href,
        external_form_services=tuple(structure.external_form_services),
        text_excerpt=text,
    )


def extract(
    url: str,
    snapshot: Optional[PageSnapshot] = None,
    keywords: Optional[Iterable[str]] = None,
    misspellings: Optional[Mapping[str, Iterable[str]]] = None,
) -> UrlFeatures:
    """
    Derive UrlFeatures from a URL and an optional page snapshot.

    Raises InvalidUrlError when the URL cannot be analyzed.
    """
    raw, scheme, hostname = _parse(url)
    keywords = DEFAULT_SUSPICIOUS_KEYWORDS if keywords is None else keywords
    misspellings = dict(DEFAULT_MISSPELLED_DOMAINS) if misspellings is None else misspellings

    has_ip = is_ip_literal(hostname)
    if has_ip or not hostname:
        subdomain_count = 0
    else:
        subdomain_count = max(0, len(hostname.split(".")) - 2)

    registered, tld = split_domain(hostname)
    after_scheme = raw.split("://", 1)[1] if "://" in raw else raw[len(scheme) + 1 :]
    patterns = find_keywords(raw, keywords)

    content = None
    if snapshot is not None:
        content = _content_features(raw, snapshot)

    return UrlFeatures(
        url=raw,
        scheme=scheme,
        hostname=hostname,
        url_length=len(raw),
        domain_length=len(hostname),
        subdomain_count=subdomain_count,
        has_ip=has_ip,
        has_at_symbol="@" in raw,
        has_double_slash="//" in after_scheme,
        dot_count=raw.count("."),
        is_https=scheme == "https",
        is_data_uri=scheme == "data",
        suspicious_pattern_count=len(patterns),
        suspicious_patterns=patterns,
        tld=tld,
        registered_domain=registered,
        misspelling_matches=find_misspellings(hostname, misspellings) if hostname else (),
        content=content,
    )
