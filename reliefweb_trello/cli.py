"""CLI for reliefweb-trello."""

from pathlib import Path
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from reliefweb_trello.config import Config, get_config, load_overview_settings, load_settings
from reliefweb_trello.config_commands import config_app
from reliefweb_trello.connectors import CountryReconciler, DisasterReconciler, OverviewReconciler, TopicReconciler
from reliefweb_trello.connectors.base import Reconciler
from reliefweb_trello.errors import FatalError
from reliefweb_trello.rwapi import RWApiClient
from reliefweb_trello.trello import TrelloClient

logger = structlog.get_logger()

app = App(
    name="rwt",
    help="Synchronize ReliefWeb countries, disasters and topics with Trello boards",
)

app.command(config_app)

# Set by the meta entry point.
_config_file: Path | None = None


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def load_config() -> Config:
    return get_config(config_file=_config_file)


def run_connector(name: str, reconciler_class: type[Reconciler]) -> None:
    """Build the clients of a connector and run a synchronization.

    Fatal errors and configuration errors are logged and end the process with
    exit status 1.
    """
    try:
        settings = load_settings(load_config(), name)
        if settings.debug:
            configure_logging("debug")
        trello = TrelloClient(settings.trello.key, settings.trello.token, url=settings.trello.url)
        rwapi = RWApiClient(settings.rwapi.appname, url=settings.rwapi.url, preset=settings.rwapi.preset)
        summary = reconciler_class(settings, trello, rwapi).run()
    except (FatalError, ValueError) as e:
        logger.error("Synchronization failed", connector=name, error=str(e))
        raise SystemExit(1) from e

    print(
        f"{name}: {summary.created} created, {summary.updated} updated, "
        f"{summary.unchanged} unchanged, {summary.archived} archived"
    )


RECONCILERS: dict[str, type[Reconciler]] = {
    "countries": CountryReconciler,
    "disasters": DisasterReconciler,
    "topics": TopicReconciler,
}


@config_app.command
def check(connector: Literal["countries", "disasters", "topics", "overview"]) -> None:
    """Check that the settings of a connector are complete.

    Args:
        connector: Connector to check
    """
    try:
        config = load_config()
        if connector == "overview":
            overview_settings = load_overview_settings(config)
            print(
                f"overview: board {overview_settings.trello.board_id}, "
                f"organization {overview_settings.organization}"
            )
            return
        settings = load_settings(config, connector)
        if RECONCILERS[connector].requires_lists and not settings.lists:
            raise ValueError(f"The {connector} connector requires at least one list in '{connector}.lists'")
    except ValueError as e:
        print(f"{connector}: {e}")
        raise SystemExit(1) from e

    print(
        f"{connector}: board {settings.trello.board_id}, "
        f"{len(settings.lists)} lists, {len(settings.labels)} labels"
    )


@app.command
def countries() -> None:
    """Update the profile and labels of the country cards."""
    run_connector("countries", CountryReconciler)


@app.command
def disasters() -> None:
    """Synchronize the disaster board."""
    run_connector("disasters", DisasterReconciler)


@app.command
def topics() -> None:
    """Synchronize the topic board."""
    run_connector("topics", TopicReconciler)


@app.command
def overview() -> None:
    """Update the project checklists of the overview board."""
    try:
        settings = load_overview_settings(load_config())
        if settings.debug:
            configure_logging("debug")
        trello = TrelloClient(settings.trello.key, settings.trello.token, url=settings.trello.url)
        summary = OverviewReconciler(settings, trello).run()
    except (FatalError, ValueError) as e:
        logger.error("Synchronization failed", connector="overview", error=str(e))
        raise SystemExit(1) from e

    print(f"overview: {summary.updated} of {summary.projects} projects updated")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info",
    config: Path | None = None,
) -> None:
    """Main entry point with global options.

    Args:
        log_level: Minimum level of the log messages
        config: Configuration file replacing the local and global ones
    """
    global _config_file
    configure_logging(log_level)
    _config_file = config
    app(tokens)


if __name__ == "__main__":
    app.meta()
