"""Connector implementations."""

from reliefweb_trello.connectors.countries import CountryReconciler
from reliefweb_trello.connectors.disasters import DisasterReconciler
from reliefweb_trello.connectors.overview import OverviewReconciler
from reliefweb_trello.connectors.topics import TopicReconciler

__all__ = ["CountryReconciler", "DisasterReconciler", "TopicReconciler", "OverviewReconciler"]
