"""HTML cleaning for source job descriptions."""

from __future__ import annotations

import html
import re

from bs4 import BeautifulSoup

_WS_RE = re.compile(r"\s+")


def clean_html(raw_html: str | None, max_chars: int | None = None) -> str:
    """Strip tags, scripts and entities from a description and collapse whitespace."""
    if not raw_html:
        return ""

    soup = BeautifulSoup(raw_html, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()

    text = html.unescape(soup.get_text(separator=" "))
    text = _WS_RE.sub(" ", text).strip()
    if max_chars is not None and len(text) > max_chars:
        text = text[:max_chars].rstrip()
    return text
