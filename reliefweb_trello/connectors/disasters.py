"""Disaster board connector."""

from dataclasses import replace
from datetime import timedelta
from typing import Any

import structlog

from reliefweb_trello.body import BodySchema, CardBody
from reliefweb_trello.connectors.base import (
    PROFILE_HEADER,
    PROFILE_UPDATE_HEADER,
    PROFILE_UPDATE_THRESHOLDS,
    TAXONOMY_URL_PATTERN,
    Description,
    Reconciler,
)
from reliefweb_trello.dates import days_between
from reliefweb_trello.errors import UpstreamUnavailable
from reliefweb_trello.models import Card, Disaster
from reliefweb_trello.text import normalize_url, select_threshold, truncate_paragraphs

logger = structlog.get_logger()

GLIDE_HEADER = "Glide Number"

LAST_REPORT_THRESHOLDS = (
    (60, "Last Report > 2 Months"),
    (30, "Last Report > 1 Month"),
    (7, "Last Report > 1 Week"),
)

# Window of the day-granularity report facet.
RECENT_REPORT_DAYS = 60


def last_report_bucket(days: int) -> int:
    """Bucket the number of days since the last report beyond a week."""
    if days > 60:
        return 61
    if days > 30:
        return 31
    if days > 7:
        return 8
    return days


class DisasterReconciler(Reconciler[Disaster]):
    """Maintain one card per disaster in the list of its status."""

    name = "disasters"
    url_pattern = TAXONOMY_URL_PATTERN
    requires_lists = True
    body_schema = BodySchema([PROFILE_UPDATE_HEADER, PROFILE_HEADER, GLIDE_HEADER])

    def fetch_entities(self) -> list[Disaster]:
        payload: dict[str, Any] = {
            "fields": {
                "include": [
                    "id",
                    "url",
                    "name",
                    "date.created",
                    "glide",
                    "status",
                    "profile.overview",
                    "country.name",
                    "country.shortname",
                    "type.name",
                    "type.code",
                ]
            },
            "limit": 1000,
            "filter": {
                "field": "status",
                "value": [item.status for item in self.settings.lists],
            },
            "sort": ["id:desc"],
        }
        result = self.rwapi.fetch("/disasters", payload)
        data = result.get("data")
        if not isinstance(data, list):
            raise UpstreamUnavailable("Unable to retrieve the ReliefWeb disasters")

        disasters = [self.prepare(self.prepare_disaster, item.get("fields") or {}, "disaster") for item in data]
        if disasters:
            disasters = self.add_last_report(disasters)
        return self.sort_entities(disasters)

    def prepare_disaster(self, fields: dict[str, Any]) -> Disaster:
        disaster = Disaster.from_api(fields)
        return replace(
            disaster,
            body=truncate_paragraphs(disaster.body, disaster.url, "Read full description"),
            url=normalize_url(disaster.url),
            status_position=self.status_position(disaster.status),
        )

    def report_facets(self, disasters: list[Disaster]) -> list[dict[str, Any]]:
        """Facets giving the latest published report of each disaster.

        The day facet covers the recent reports, the year facet tells whether a
        report was ever published.
        """
        since = (self.now - timedelta(days=RECENT_REPORT_DAYS)).replace(microsecond=0).isoformat()
        facets = []
        for disaster in disasters:
            conditions: list[dict[str, Any]] = [
                {"field": "disaster.id", "value": disaster.id},
                {"field": "status", "value": "published"},
            ]
            facets.append(
                {
                    "name": f"{disaster.id}-day",
                    "field": "date.created",
                    "interval": "day",
                    "sort": "value:desc",
                    "filter": {
                        "conditions": conditions + [{"field": "date.created", "value": {"from": since}}],
                        "operator": "AND",
                    },
                }
            )
            facets.append(
                {
                    "name": f"{disaster.id}-year",
                    "field": "date.created",
                    "interval": "year",
                    "sort": "value:desc",
                    "filter": {"conditions": conditions, "operator": "AND"},
                }
            )
        return facets

    def add_last_report(self, disasters: list[Disaster]) -> list[Disaster]:
        """Set the number of days since the last published report of each disaster."""
        result = self.rwapi.fetch("/reports", {"limit": 0, "facets": self.report_facets(disasters)})
        facets = (result.get("embedded") or {}).get("facets")
        if not isinstance(facets, dict):
            raise UpstreamUnavailable("Unable to retrieve extra disaster data")

        enriched = []
        for disaster in disasters:
            last_report = None
            day = (facets.get(f"{disaster.id}-day") or {}).get("data") or []
            year = (facets.get(f"{disaster.id}-year") or {}).get("data") or []
            if day:
                days = days_between(self.now, day[0].get("value"))
                if days is not None:
                    last_report = last_report_bucket(days)
            elif year:
                last_report = 61
            enriched.append(replace(disaster, last_report=last_report))
        logger.debug("Added last report data", count=len(enriched))
        return enriched

    def tag_labels(self, entity: Disaster) -> list[str]:
        return [*entity.types, *entity.countries]

    def describe(self, entity: Disaster, card: Card | None) -> Description:
        stored = self.body_schema.parse(card.desc) if card is not None else CardBody()
        stamp = self.content_timestamp(stored, PROFILE_UPDATE_HEADER, PROFILE_HEADER, entity.body)
        text = self.body_schema.render(
            {PROFILE_UPDATE_HEADER: stamp, PROFILE_HEADER: entity.body, GLIDE_HEADER: entity.glide},
            preamble=stored.preamble,
        )
        return Description(text=text, updated=stamp)

    def desired_labels(self, entity: Disaster, description: Description) -> list[str]:
        names: list[str | None] = [*self.tag_labels(entity)]
        names.append(select_threshold(entity.last_report, LAST_REPORT_THRESHOLDS))
        names.append(select_threshold(days_between(self.now, description.updated), PROFILE_UPDATE_THRESHOLDS))
        return self.select_labels(names)
