# SPDX-License-Identifier: MIT

from pathlib import Path
from typing import Literal, Optional, TypedDict

from yaml import load

try:
    from yaml import CLoader as Loader
except ImportError:
    from yaml import Loader  # type: ignore[assignment]
import platformdirs

APP_NAME = "timetally"

CONFIG_PATH = platformdirs.user_config_path(APP_NAME)
APP_CONFIG_PATH = CONFIG_PATH / "config.yaml"

# These will be set dynamically by load_data_path_configuration()
DATA_PATH: Path = platformdirs.user_data_path(APP_NAME)
DATA_CACHE_PATH: Path = DATA_PATH / "cache.json"
DATA_QUOTA_PATH: Path = DATA_PATH / "quota.json"
DATA_TOKEN_PATH: Path = DATA_PATH / "token"

TOKEN_ENV_VAR = "TOGGL_API_TOKEN"

DEFAULT_TARGET_HOURS = 8.0
DEFAULT_DAILY_CALL_LIMIT = 30

RoundingModeName = Literal["closest", "up", "down"]
WeekStartName = Literal["monday", "sunday"]


class RoundingConfiguration(TypedDict):
    increment_minutes: int
    mode: RoundingModeName


class RollupConfiguration(TypedDict):
    include_weekends: bool
    week_start: WeekStartName


class Configuration(TypedDict):
    target_hours: float
    rounding: Optional[RoundingConfiguration]
    rollups: RollupConfiguration
    non_working_days: list[str]
    daily_call_limit: int
    workspace_id: Optional[int]
    data_path: Optional[str]


def load_data_path_configuration() -> None:
    """
    Load the configuration and set the DATA_PATH variables dynamically.

    This must be called after the config file exists and before any
    repositories are instantiated.
    """
    global DATA_PATH, DATA_CACHE_PATH, DATA_QUOTA_PATH, DATA_TOKEN_PATH

    if not APP_CONFIG_PATH.is_file():
        # Config doesn't exist yet, use defaults
        return

    config: Optional[Configuration] = load(APP_CONFIG_PATH.read_text(), Loader=Loader)
    if config is None:
        return
    data_path_setting = config.get("data_path")

    if data_path_setting is not None:
        DATA_PATH = Path(data_path_setting)

        DATA_CACHE_PATH = DATA_PATH / "cache.json"
        DATA_QUOTA_PATH = DATA_PATH / "quota.json"
        DATA_TOKEN_PATH = DATA_PATH / "token"
