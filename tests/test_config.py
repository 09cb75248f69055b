"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from reliefweb_trello.config import (
    CONFIG_ENV_VAR,
    Config,
    ListConfig,
    load_overview_settings,
    load_settings,
)

FULL_CONFIG = {
    "trello.key": "test-key",
    "trello.token": "test-token",
    "trello.board_id": "default-board",
    "rwapi.appname": "test-app",
    "disasters": {
        "board_id": "disaster-board",
        "lists": [
            {"name": "Alert", "status": "alert", "position": 1},
            {"name": "Ongoing", "status": "current", "position": 2},
        ],
        "labels": {"Last Report > 1 Week": "yellow", "Featured": None},
    },
    "countries": {"statuses": {"current": "ongoing"}, "debug": "true"},
    "overview": {"organization": "reliefweb", "excluded_boards": ["b9"]},
}


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home and working directories to temporary ones."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.chdir(work)
    return home


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write the full configuration to a file."""
    path = tmp_path / "rwt.yaml"
    path.write_text(yaml.safe_dump(FULL_CONFIG))
    return path


def test_set_get_unset() -> None:
    """Test setting, reading and removing a local value."""
    config = Config()
    config.set("trello.key", "abc")

    assert Config().get("trello.key") == "abc"
    assert (Path.cwd() / ".reliefweb-trello" / "config.yaml").exists()

    config.unset("trello.key")
    assert Config().get("trello.key") is None


def test_local_falls_back_to_global() -> None:
    """Test that local config reads global values it does not override."""
    Config(use_global=True).set("trello.key", "global-key")
    Config(use_global=True).set("rwapi.appname", "global-app")
    Config().set("rwapi.appname", "local-app")

    config = Config()
    assert config.get("trello.key") == "global-key"
    assert config.get("rwapi.appname") == "local-app"
    assert config.list() == {"trello.key": "global-key", "rwapi.appname": "local-app"}


def test_explicit_file_from_environment(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that the environment variable selects the config file."""
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))

    assert Config().get("rwapi.appname") == "test-app"


def test_invalid_file(tmp_path: Path) -> None:
    """Test that a file not holding a mapping is rejected."""
    path = tmp_path / "bad.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ValueError, match="mapping"):
        Config(config_file=path)


def test_load_settings(config_file: Path) -> None:
    """Test building connector settings."""
    settings = load_settings(Config(config_file=config_file), "disasters")

    assert settings.trello.board_id == "disaster-board"
    assert settings.trello.key == "test-key"
    assert settings.rwapi.appname == "test-app"
    assert settings.rwapi.url == "https://api.reliefweb.int/v1"
    assert settings.lists == (
        ListConfig(name="Alert", status="alert", position=1),
        ListConfig(name="Ongoing", status="current", position=2),
    )
    assert settings.labels == {"Last Report > 1 Week": "yellow", "Featured": ""}
    assert settings.debug is False


def test_load_settings_defaults(config_file: Path) -> None:
    """Test that the connector falls back to the default board."""
    settings = load_settings(Config(config_file=config_file), "countries")

    assert settings.trello.board_id == "default-board"
    assert settings.lists == ()
    assert settings.statuses == {"current": "ongoing"}
    assert settings.debug is True


def test_load_settings_missing_credentials(tmp_path: Path) -> None:
    """Test that missing credentials are reported."""
    path = tmp_path / "rwt.yaml"
    path.write_text(yaml.safe_dump({"rwapi.appname": "test-app"}))

    with pytest.raises(ValueError, match="rwt config set trello.key"):
        load_settings(Config(config_file=path), "topics")


def test_load_settings_missing_appname(tmp_path: Path) -> None:
    """Test that a missing ReliefWeb app name is reported."""
    path = tmp_path / "rwt.yaml"
    path.write_text(yaml.safe_dump({"trello.key": "k", "trello.token": "t", "trello.board_id": "b"}))

    with pytest.raises(ValueError, match="rwapi.appname"):
        load_settings(Config(config_file=path), "topics")


def test_load_settings_invalid_list(tmp_path: Path) -> None:
    """Test that lists without status are rejected."""
    data = dict(FULL_CONFIG, topics={"lists": [{"name": "Published"}]})
    path = tmp_path / "rwt.yaml"
    path.write_text(yaml.safe_dump(data))

    with pytest.raises(ValueError, match="topics.lists"):
        load_settings(Config(config_file=path), "topics")


def test_load_settings_unknown_connector(config_file: Path) -> None:
    """Test that unknown connectors are rejected."""
    with pytest.raises(ValueError, match="Unknown connector"):
        load_settings(Config(config_file=config_file), "reports")


def test_load_overview_settings(config_file: Path) -> None:
    """Test building the overview settings with the default prefixes."""
    settings = load_overview_settings(Config(config_file=config_file))

    assert settings.organization == "reliefweb"
    assert settings.trello.board_id == "default-board"
    assert settings.project_prefix == "Project: "
    assert settings.doer_prefix == "Doer: "
    assert settings.excluded_boards == ("b9",)
