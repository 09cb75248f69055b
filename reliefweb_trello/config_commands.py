"""Configuration commands for the reliefweb-trello CLI."""

import yaml
from cyclopts import App

from reliefweb_trello.config import get_config, get_setting, mask_secret, set_setting, unset_setting

config_app = App(name="config", help="Manage configuration")


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration setting.

    Args:
        key: Setting, for example trello.token, rwapi.appname or disasters.board_id
        value: Setting value
        global_: If True, set in global config. If False, set in local config.
    """
    config = get_config(use_global=global_)
    set_setting(config, key, value)
    print(f"Set {key} = {mask_secret(key, value)} ({_scope(global_)})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Unset a configuration setting.

    Args:
        key: Setting, or a whole connector section such as disasters
        global_: If True, unset from global config. If False, unset from local config.
    """
    unset_setting(get_config(use_global=global_), key)
    print(f"Unset {key} ({_scope(global_)})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Print a configuration setting.

    Args:
        key: Setting, or a whole connector section such as disasters
        global_: If True, get from global config only. If False, get with global fallback.
    """
    value = get_setting(get_config(use_global=global_), key)
    if value is None:
        print(f"{key} is not set")
    elif isinstance(value, dict):
        print(f"{key}:\n{yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip()}")
    else:
        print(f"{key} = {mask_secret(key, value)}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """List all configuration settings, credentials masked.

    Args:
        global_: If True, list global config only. If False, list merged config.
    """
    settings = get_config(use_global=global_).list()
    if not settings:
        print(f"No {_scope(global_)} configuration settings")
        return

    scalars = {key: mask_secret(key, value) for key, value in settings.items() if not isinstance(value, dict)}
    sections = {key: value for key, value in settings.items() if isinstance(value, dict)}
    print(yaml.safe_dump({**scalars, **sections}, default_flow_style=False, sort_keys=False).rstrip())
