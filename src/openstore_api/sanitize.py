"""Reduce user or manifest supplied HTML to plain text."""

from __future__ import annotations

from bs4 import BeautifulSoup

# Elements whose text content is dropped along with the tag.
_DISCARDED_TAGS = ("script", "style", "textarea", "option", "noscript")


def sanitize(html: str | None) -> str:
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for element in soup.find_all(_DISCARDED_TAGS):
        element.decompose()

    text = soup.get_text()
    return (
        text.replace("&amp;", "&")
        .replace("&quot;", '"')
        .replace("&gt;", ">")
        .replace("&lt;", "<")
        .replace("\r", "")
        .strip()
    )


__all__ = ["sanitize"]
