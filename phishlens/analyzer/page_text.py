"""HTML structure and visible-text extraction for page snapshots."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Optional
from urllib.parse import urljoin, urlparse

from ..constants import MAX_TEXT_CHARS
from ..utils.domains import canonicalize_domain

_SKIP_TAGS = {"script", "style", "noscript", "svg", "canvas", "template"}

FORM_SERVICE_HOSTS = (
    "formsubmit",
    "formspree",
    "formkeep",
    "formcarry",
    "sheets.googleapis.com",
)


@dataclass
class PageStructure:
    """Counts and captures gathered from one pass over a page's HTML."""

    form_count: int = 0
    input_count: int = 0
    password_input_count: int = 0
    hidden_field_count: int = 0
    link_count: int = 0
    external_link_count: int = 0
    iframe_count: int = 0
    title: str = ""
    favicon_href: Optional[str] = None
    external_form_services: list[str] = field(default_factory=list)
    text: str = ""


class _PageParser(HTMLParser):
    def __init__(self, page_url: str) -> None:
        super().__init__(convert_charrefs=True)
        self._page_url = page_url
        self._page_host = canonicalize_domain(page_url)
        self._chunks: list[str] = []
        self._skip_depth = 0
        self._in_title = False
        self._title_chunks: list[str] = []
        self.structure = PageStructure()

    def handle_starttag(self, tag: str, attrs) -> None:  # type: ignore[override]
        attributes = {k.lower(): (v or "") for k, v in attrs}
        s = self.structure

        if tag in _SKIP_TAGS:
            self._skip_depth += 1
        elif tag == "title":
            self._in_title = True
        elif tag == "form":
            s.form_count += 1
            action = attributes.get("action", "").lower()
            for service in FORM_SERVICE_HOSTS:
                if service in action and service not in s.external_form_services:
                    s.external_form_services.append(service)
        elif tag == "input":
            s.input_count += 1
            input_type = attributes.get("type", "text").lower()
            if input_type == "password":
                s.password_input_count += 1
            elif input_type == "hidden":
                s.hidden_field_count += 1
        elif tag == "a":
            href = attributes.get("href", "").strip()
            if href:
                s.link_count += 1
                if self._is_external(href):
                    s.external_link_count += 1
        elif tag == "iframe":
            s.iframe_count += 1
        elif tag == "link" and s.favicon_href is None:
            rel = attributes.get("rel", "").lower().split()
            href = attributes.get("href", "").strip()
            if href and "icon" in rel:
                s.favicon_href = href

    def handle_startendtag(self, tag: str, attrs) -> None:  # type: ignore[override]
        # Void elements (<input/>, <link/>) never open a skip region.
        if tag in _SKIP_TAGS or tag == "title":
            return
        self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag: str) -> None:  # type: ignore[override]
        if tag in _SKIP_TAGS and self._skip_depth:
            self._skip_depth -= 1
        elif tag == "title":
            self._in_title = False

    def handle_data(self, data: str) -> None:  # type: ignore[override]
        if self._skip_depth or not data or not data.strip():
            return
        if self._in_title:
            self._title_chunks.append(data.strip())
            return
        self._chunks.append(data.strip())

    def _is_external(self, href: str) -> bool:
        if href.startswith(("#", "javascript:", "mailto:", "tel:")):
            return False
        try:
            target = urlparse(urljoin(self._page_url, href))
            if target.scheme not in {"http", "https"}:
                return False
            host = canonicalize_domain(target.hostname or "")
        except ValueError:
            # Malformed href, e.g. an unclosed IPv6 bracket.
            return False
        return bool(host) and host != self._page_host

    def finish(self) -> PageStructure:
        self.close()
        self.structure.title = " ".join(self._title_chunks)
        self.structure.text = normalize_text(" ".join(self._chunks))
        return self.structure


def normalize_text(text: str, limit: int = MAX_TEXT_CHARS) -> str:
    """Collapse whitespace and cap the text at ``limit`` characters."""
    return re.sub(r"\s+", " ", text or "").strip()[:limit]


def parse_page(html: str, page_url: str) -> PageStructure:
    """Parse page HTML into structural counts and visible text."""
    parser = _PageParser(page_url)
    parser.feed(html or "")
    return parser.finish()
