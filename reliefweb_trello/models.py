"""Data models for ReliefWeb entities and Trello board objects."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    """Return a required field or raise a ValueError naming the missing field."""
    value = data.get(key)
    if value is None:
        raise ValueError(f"{kind} is missing required field '{key}'")
    return value


def _names(items: Any) -> tuple[str, ...]:
    """Extract the names of a list of taxonomy terms (``[{"name": ...}]``)."""
    if not items:
        return ()
    return tuple(item["name"] for item in items if item.get("name"))


def _parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 date, assuming UTC when it has no offset."""
    if not value:
        return None
    date = datetime.fromisoformat(value)
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date


# ReliefWeb entities


@dataclass(frozen=True)
class Entity:
    """Base record shared by the ReliefWeb entities tracked on a board."""

    id: int
    url: str
    name: str
    body: str = ""
    status: str = ""
    status_position: int = 0


@dataclass(frozen=True)
class Country(Entity):
    """ReliefWeb country."""

    iso3: str = ""
    shortname: str = ""

    @classmethod
    def from_api(cls, fields: dict[str, Any]) -> "Country":
        return cls(
            id=int(_require(fields, "id", "Country")),
            url=_require(fields, "url", "Country"),
            name=_require(fields, "name", "Country"),
            body=fields.get("description") or "",
            status=fields.get("status") or "",
            iso3=fields.get("iso3") or "",
            shortname=fields.get("shortname") or "",
        )


@dataclass(frozen=True)
class Disaster(Entity):
    """ReliefWeb disaster.

    ``last_report`` is the number of days since the last published report,
    bucketed to 8, 31 or 61 beyond a week, or None when nothing was ever
    published for the disaster.
    """

    glide: str = ""
    types: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    last_report: int | None = None

    @classmethod
    def from_api(cls, fields: dict[str, Any]) -> "Disaster":
        profile = fields.get("profile") or {}
        return cls(
            id=int(_require(fields, "id", "Disaster")),
            url=_require(fields, "url", "Disaster"),
            name=_require(fields, "name", "Disaster"),
            body=profile.get("overview") or "",
            status=_require(fields, "status", "Disaster"),
            glide=fields.get("glide") or "",
            types=_names(fields.get("type")),
            countries=_names(fields.get("country")),
        )


@dataclass(frozen=True)
class ChecklistItem:
    """Desired checklist item, identified by its URL."""

    url: str
    title: str
    position: int

    @property
    def name(self) -> str:
        return f"[{self.title}]({self.url})"


@dataclass(frozen=True)
class Topic(Entity):
    """ReliefWeb topic page."""

    featured: bool = False
    changed: datetime | None = None
    themes: tuple[str, ...] = ()
    disaster_types: tuple[str, ...] = ()
    checklists: dict[str, tuple[ChecklistItem, ...]] = field(default_factory=dict)

    @classmethod
    def from_api(cls, fields: dict[str, Any]) -> "Topic":
        date = fields.get("date") or {}
        return cls(
            id=int(_require(fields, "id", "Topic")),
            url=_require(fields, "url", "Topic"),
            name=_require(fields, "title", "Topic"),
            body=fields.get("introduction") or "",
            status=_require(fields, "status", "Topic"),
            featured=fields.get("featured") is True,
            changed=_parse_datetime(date.get("changed")),
            themes=_names(fields.get("theme")),
            disaster_types=_names(fields.get("disaster_type")),
        )


# Trello objects


@dataclass
class Label:
    """Trello board label."""

    id: str
    name: str
    color: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Label":
        return cls(id=_require(data, "id", "Label"), name=data.get("name") or "", color=data.get("color"))


@dataclass
class BoardList:
    """Trello board list."""

    id: str
    name: str
    pos: float = 0
    closed: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "BoardList":
        return cls(
            id=_require(data, "id", "List"),
            name=data.get("name") or "",
            pos=data.get("pos") or 0,
            closed=bool(data.get("closed", False)),
        )


@dataclass
class CheckItem:
    """Item of a Trello checklist."""

    id: str
    name: str
    pos: float = 0
    state: str = "incomplete"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CheckItem":
        return cls(
            id=_require(data, "id", "CheckItem"),
            name=data.get("name") or "",
            pos=data.get("pos") or 0,
            state=data.get("state") or "incomplete",
        )


@dataclass
class Checklist:
    """Trello checklist attached to a card."""

    id: str
    name: str
    items: list[CheckItem] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Checklist":
        return cls(
            id=_require(data, "id", "Checklist"),
            name=data.get("name") or "",
            items=[CheckItem.from_api(item) for item in data.get("checkItems") or []],
        )


@dataclass
class Card:
    """Trello card."""

    id: str
    name: str
    list_id: str = ""
    pos: float = 0
    closed: bool = False
    desc: str = ""
    labels: list[Label] = field(default_factory=list)
    attachments: list[str] = field(default_factory=list)
    checklists: list[Checklist] = field(default_factory=list)
    short_url: str = ""
    due: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Card":
        return cls(
            id=_require(data, "id", "Card"),
            name=data.get("name") or "",
            list_id=data.get("idList") or "",
            pos=data.get("pos") or 0,
            closed=bool(data.get("closed", False)),
            desc=data.get("desc") or "",
            labels=[Label.from_api(label) for label in data.get("labels") or []],
            attachments=[item["url"] for item in data.get("attachments") or [] if item.get("url")],
            checklists=[Checklist.from_api(item) for item in data.get("checklists") or []],
            short_url=data.get("shortUrl") or "",
            due=data.get("due"),
        )


@dataclass
class Board:
    """Snapshot of a Trello board."""

    id: str
    name: str = ""
    lists: list[BoardList] = field(default_factory=list)
    labels: list[Label] = field(default_factory=list)
    cards: list[Card] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Board":
        return cls(
            id=_require(data, "id", "Board"),
            name=data.get("name") or "",
            lists=[BoardList.from_api(item) for item in data.get("lists") or []],
            labels=[Label.from_api(item) for item in data.get("labels") or []],
            cards=[Card.from_api(item) for item in data.get("cards") or []],
        )
