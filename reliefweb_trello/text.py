"""Text helpers used to build card content."""

import re
from collections.abc import Sequence

PARAGRAPH_SEPARATOR = re.compile(r"\n{2,}")
MAX_PARAGRAPHS = 3
KEPT_PARAGRAPHS = 4
ELLIPSIS = "..."


def normalize_url(url: str) -> str:
    """Rewrite https URLs to http.

    Cards were originally created with http links so the matching key must stay
    on that scheme.
    """
    return re.sub(r"^https:", "http:", url)


def markdown_link(url: str, title: str) -> str:
    return f"[{title}]({url})"


def parse_markdown_link(text: str) -> tuple[str, str] | None:
    """Split a ``[title](url)`` text into its title and URL.

    Returns None when the text is not a markdown link.
    """
    index = text.find("](")
    if index <= 0:
        return None
    title = text[:index][1:]
    url = text[index + 2 :][:-1]
    return title, url


def truncate_paragraphs(text: str, url: str, link_title: str) -> str:
    """Keep the last paragraphs of a long text and link to the full version.

    Trello limits the size of card descriptions. Texts with more than 3
    paragraphs are reduced to their last 4 paragraphs, prefixed with an ellipsis
    and followed by a link to the full text.
    """
    if not text:
        return ""
    paragraphs = PARAGRAPH_SEPARATOR.split(text)
    if len(paragraphs) <= MAX_PARAGRAPHS:
        return text
    kept = "\n\n".join(paragraphs[-KEPT_PARAGRAPHS:]).strip()
    return "\n\n".join([ELLIPSIS, kept, markdown_link(url, link_title)])


def select_threshold(value: int | None, thresholds: Sequence[tuple[int, str]]) -> str | None:
    """Return the name attached to the highest threshold strictly exceeded.

    ``thresholds`` must be ordered from the highest limit to the lowest.
    """
    if value is None:
        return None
    for limit, name in thresholds:
        if value > limit:
            return name
    return None
