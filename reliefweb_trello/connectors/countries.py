"""Country board connector."""

from dataclasses import replace
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
from reliefweb_trello.models import Card, Country
from reliefweb_trello.text import normalize_url, select_threshold

logger = structlog.get_logger()

ONGOING_SITUATION = "Ongoing Situation"
PROFILE_CHECKED = "Profile Checked"


class CountryReconciler(Reconciler[Country]):
    """Keep the country cards' profile and labels up to date.

    Without lists in the configuration the connector only updates the existing
    cards: it neither creates, moves nor archives any.
    """

    name = "countries"
    url_pattern = TAXONOMY_URL_PATTERN
    card_filter = "open"
    body_schema = BodySchema([PROFILE_UPDATE_HEADER, PROFILE_HEADER])

    def fetch_entities(self) -> list[Country]:
        payload: dict[str, Any] = {
            "fields": {
                "include": ["id", "url", "name", "shortname", "iso3", "status", "description"],
            },
            "limit": 1000,
            "sort": ["id:desc"],
        }
        result = self.rwapi.fetch("/countries", payload)
        data = result.get("data")
        if not data or not isinstance(data, list):
            raise UpstreamUnavailable("Unable to retrieve the ReliefWeb countries")

        countries = [self.prepare(self.prepare_country, item.get("fields") or {}, "country") for item in data]
        return self.sort_entities(countries)

    def prepare_country(self, fields: dict[str, Any]) -> Country:
        country = Country.from_api(fields)
        return replace(
            country,
            url=normalize_url(country.url),
            status_position=self.status_position(country.status),
        )

    def tag_labels(self, entity: Country) -> list[str]:
        return [name for name in (entity.iso3, entity.shortname) if name]

    def describe(self, entity: Country, card: Card | None) -> Description:
        stored = self.body_schema.parse(card.desc) if card is not None else CardBody()

        # Countries without a profile only keep the free text of their card.
        if not entity.body:
            return Description(text=stored.preamble.rstrip("\n"))

        stamp = self.content_timestamp(stored, PROFILE_UPDATE_HEADER, PROFILE_HEADER, entity.body)
        text = self.body_schema.render(
            {PROFILE_UPDATE_HEADER: stamp, PROFILE_HEADER: entity.body},
            preamble=stored.preamble,
        )
        return Description(text=text, updated=stamp)

    def desired_labels(self, entity: Country, description: Description) -> list[str]:
        names: list[str | None] = []
        if self.settings.statuses.get(entity.status) == "ongoing":
            names.append(ONGOING_SITUATION)
        if entity.body:
            names.append(PROFILE_CHECKED)
        names.extend(self.tag_labels(entity))
        names.append(select_threshold(days_between(self.now, description.updated), PROFILE_UPDATE_THRESHOLDS))
        return self.select_labels(names)
