"""Structured encoding of card descriptions.

A card description is made of an optional free text preamble followed by
sections, each introduced by a markdown header line::

    <preamble>

    # Last Profile Update

    5 Mar 2024

    # Profile

    Overview of the disaster...

This is the layout cards have always been written with, so existing
descriptions are parsed and re-encoded unchanged. Content lines that look like
one of the schema headers are escaped with a backslash (``\\# Profile``), and a
line already made of backslashes followed by a header gets one more, so parsing
is total and always returns the encoded content.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()


@dataclass
class CardBody:
    """Sections recovered from a card description."""

    preamble: str = ""
    sections: dict[str, str] = field(default_factory=dict)

    def get(self, header: str) -> str | None:
        return self.sections.get(header)


class BodySchema:
    """Ordered list of section headers making up a card description."""

    def __init__(self, headers: Sequence[str]) -> None:
        if not headers:
            raise ValueError("A body schema needs at least one header")
        self.headers = tuple(headers)
        alternatives = "|".join(re.escape(header) for header in self.headers)
        self._escape_pattern = re.compile(rf"^(\\*# (?:{alternatives}))$", re.MULTILINE)
        self._unescape_pattern = re.compile(rf"^\\(\\*# (?:{alternatives}))$", re.MULTILINE)
        # Whole line only: escaped lines and subheadings such as "## Profile" never match.
        self._first_marker = re.compile(rf"^# {re.escape(self.headers[0])}\n\n", re.MULTILINE)

    def escape(self, content: str) -> str:
        return self._escape_pattern.sub(r"\\\1", content)

    def unescape(self, content: str) -> str:
        return self._unescape_pattern.sub(r"\1", content)

    def render(self, sections: dict[str, str], preamble: str = "") -> str:
        """Encode the sections, in schema order, after the preamble.

        The preamble is separated from the first header by a blank line.
        """
        if preamble and not preamble.endswith("\n\n"):
            preamble = preamble.rstrip("\n") + "\n\n"
        parts = []
        for header in self.headers:
            parts.append(f"# {header}\n\n{self.escape(sections.get(header, ''))}")
        return preamble + "\n\n".join(parts)

    def parse(self, desc: str) -> CardBody:
        """Decode a card description.

        Sections are located from the last occurrence of the first header. A
        trailing header that is missing ends the parsed sections, the content of
        the last found section then running to the end of the description.
        Descriptions without the first header are returned as a preamble.
        """
        matches = list(self._first_marker.finditer(desc))
        if not matches:
            return CardBody(preamble=desc)

        start = matches[-1].start()
        preamble = desc[:start]
        cursor = matches[-1].end()

        found: list[tuple[str, int, int]] = []
        content_start = cursor
        for header in self.headers[1:]:
            marker = f"\n\n# {header}\n\n"
            index = desc.rfind(marker, cursor)
            if index == -1:
                logger.debug("Missing section in card description", header=header)
                break
            found.append((header, index, index + len(marker)))
            cursor = index + len(marker)

        sections: dict[str, str] = {}
        previous = self.headers[0]
        for header, index, end in found:
            sections[previous] = self.unescape(desc[content_start:index])
            previous = header
            content_start = end
        sections[previous] = self.unescape(desc[content_start:])

        return CardBody(preamble=preamble, sections=sections)
