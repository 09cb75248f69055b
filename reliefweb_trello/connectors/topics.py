"""Topic board connector."""

import re
from dataclasses import replace
from typing import Any

import structlog

from reliefweb_trello.body import BodySchema, CardBody
from reliefweb_trello.connectors.base import NODE_URL_PATTERN, Description, Reconciler
from reliefweb_trello.dates import days_between, format_timestamp
from reliefweb_trello.errors import ChecklistItemMutationFailed, ChecklistMutationFailed, UpstreamUnavailable
from reliefweb_trello.models import Card, Checklist, ChecklistItem, Topic
from reliefweb_trello.text import normalize_url, parse_markdown_link, select_threshold, truncate_paragraphs

logger = structlog.get_logger()

LAST_UPDATE_HEADER = "Last Update"
INTRODUCTION_HEADER = "Introduction"

FEATURED = "Featured"

RIVERS = "Rivers"
SECTIONS = "Sections"
RESOURCES = "Resources"

LAST_UPDATE_THRESHOLDS = (
    (60, "Last Update > 2 Months"),
    (30, "Last Update > 1 Month"),
    (7, "Last Update > 1 Week"),
)

RESOURCE_PATTERN = re.compile(r'<a[^>]*href="([^"]+)"[^>]*>([^<]+)<')


def extract_checklists(fields: dict[str, Any]) -> dict[str, tuple[ChecklistItem, ...]]:
    """Build the Rivers, Sections and Resources checklists of a topic.

    Rivers whose ID starts with ``section-`` are page sections. Resources are
    the links of the resources HTML. Items are unique per URL and numbered from
    1 in order of appearance.
    """
    groups: dict[str, dict[str, ChecklistItem]] = {RIVERS: {}, SECTIONS: {}, RESOURCES: {}}

    for river in fields.get("rivers") or []:
        url = (river.get("url") or "").strip()
        if not url:
            continue
        group = groups[SECTIONS] if str(river.get("id", "")).startswith("section-") else groups[RIVERS]
        if url not in group:
            title = (river.get("title") or "").strip() or url
            group[url] = ChecklistItem(url=url, title=title, position=len(group) + 1)

    resources = groups[RESOURCES]
    for match in RESOURCE_PATTERN.finditer(fields.get("resources-html") or ""):
        url = match.group(1).strip()
        if url not in resources:
            title = match.group(2).strip() or url
            resources[url] = ChecklistItem(url=url, title=title, position=len(resources) + 1)

    return {name: tuple(items.values()) for name, items in groups.items()}


class TopicReconciler(Reconciler[Topic]):
    """Maintain one card per topic with checklists of its rivers, sections and resources.

    Text typed above the generated sections of a card description is kept.
    """

    name = "topics"
    url_pattern = NODE_URL_PATTERN
    with_checklists = True
    requires_lists = True
    body_schema = BodySchema([LAST_UPDATE_HEADER, INTRODUCTION_HEADER])

    def fetch_entities(self) -> list[Topic]:
        payload: dict[str, Any] = {
            "fields": {
                "include": [
                    "id",
                    "url",
                    "title",
                    "date.changed",
                    "status",
                    "featured",
                    "introduction",
                    "rivers",
                    "resources-html",
                    "disaster_type.name",
                    "theme.name",
                ],
            },
            "limit": 1000,
            "filter": {
                "field": "status",
                "value": [item.status for item in self.settings.lists],
            },
            "sort": ["id:desc"],
        }
        result = self.rwapi.fetch("/topics", payload)
        data = result.get("data")
        if not isinstance(data, list):
            raise UpstreamUnavailable("Unable to retrieve the ReliefWeb topics")

        topics = [self.prepare(self.prepare_topic, item.get("fields") or {}, "topic") for item in data]
        return self.sort_entities(topics)

    def prepare_topic(self, fields: dict[str, Any]) -> Topic:
        topic = Topic.from_api(fields)
        return replace(
            topic,
            body=truncate_paragraphs(topic.body, topic.url, "Read full introduction"),
            url=normalize_url(topic.url),
            status_position=self.status_position(topic.status),
            checklists=extract_checklists(fields),
        )

    def tag_labels(self, entity: Topic) -> list[str]:
        return [*entity.disaster_types, *entity.themes]

    def describe(self, entity: Topic, card: Card | None) -> Description:
        stored = self.body_schema.parse(card.desc) if card is not None else CardBody()
        stamp = format_timestamp(entity.changed) if entity.changed else ""
        text = self.body_schema.render(
            {LAST_UPDATE_HEADER: stamp, INTRODUCTION_HEADER: entity.body},
            preamble=stored.preamble,
        )
        return Description(text=text, updated=stamp or None)

    def desired_labels(self, entity: Topic, description: Description) -> list[str]:
        names: list[str | None] = [*self.tag_labels(entity)]
        if entity.featured:
            names.append(FEATURED)

        # Label named after the status list.
        status_list = self.lists.get(entity.status)
        if status_list is not None:
            names.append(status_list.name)

        names.append(select_threshold(days_between(self.now, entity.changed), LAST_UPDATE_THRESHOLDS))
        return self.select_labels(names)

    def sync_checklists(self, card: Card, entity: Topic) -> bool:
        existing: dict[str, Checklist] = {}
        for checklist in card.checklists:
            existing.setdefault(checklist.name, checklist)

        changed = False
        for name, items in entity.checklists.items():
            checklist = existing.get(name)
            if checklist is not None:
                if self.update_checklist(card, checklist, items):
                    changed = True
                continue

            try:
                checklist = self.mutator.add_checklist(card, name)
            except ChecklistMutationFailed as e:
                logger.error(str(e))
                continue
            card.checklists.append(checklist)
            changed = True
            for item in items:
                self.add_check_item(checklist, item)

        return changed

    def update_checklist(self, card: Card, checklist: Checklist, items: tuple[ChecklistItem, ...]) -> bool:
        """Add, update or delete the link items of a checklist.

        Items that are not markdown links were added by editors and are kept.
        """
        desired = {item.url: item for item in items}
        changed = False

        for check_item in checklist.items:
            link = parse_markdown_link(check_item.name)
            if link is None:
                continue
            title, url = link

            item = desired.pop(url, None)
            if item is None:
                try:
                    self.mutator.delete_check_item(checklist, check_item.id)
                    changed = True
                except ChecklistItemMutationFailed as e:
                    logger.error(str(e))
            elif item.title != title or item.position != check_item.pos:
                try:
                    self.mutator.update_check_item(card.id, checklist, check_item.id, item.name, pos=item.position)
                    changed = True
                except ChecklistItemMutationFailed as e:
                    logger.error(str(e))

        for item in desired.values():
            if self.add_check_item(checklist, item):
                changed = True

        return changed

    def add_check_item(self, checklist: Checklist, item: ChecklistItem) -> bool:
        try:
            self.mutator.add_check_item(checklist, item.name, pos=item.position)
        except ChecklistItemMutationFailed as e:
            logger.error(str(e))
            return False
        return True
