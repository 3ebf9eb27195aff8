# SPDX-License-Identifier: MIT

from copy import deepcopy
from pathlib import Path
from typing import Optional

from yaml import dump, load

try:
    from yaml import CDumper as Dumper
    from yaml import CLoader as Loader  # noqa: F401
except ImportError:
    from yaml import Dumper, Loader  # type: ignore[assignment]

from timetally import configuration
from timetally.template.configuration import get_configuration_template


class ConfigurationRepository:
    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._config: Optional[configuration.Configuration] = None

    @property
    def path(self) -> Path:
        return self._path or configuration.APP_CONFIG_PATH

    @property
    def config(self) -> configuration.Configuration:
        if self._config is None:
            self.__load_data()
        if self._config is None:
            raise ValueError()
        return self._config

    def __load_data(self) -> None:
        if not self.path.is_file():
            self._config = get_configuration_template()
            return

        self._config = load(self.path.read_text(), Loader=Loader)

        if self._config is None:
            raise ValueError(f"empty configuration file: {self.path}")

        defaults = get_configuration_template()
        # Migration: Add any top-level field missing from older config files
        for key, value in defaults.items():
            if key not in self._config:
                self._config[key] = value  # type: ignore[literal-required]
        # Migration: Add rollup preference fields if they don't exist
        for key, value in defaults["rollups"].items():
            if key not in self._config["rollups"]:
                self._config["rollups"][key] = value  # type: ignore[literal-required]

    def __save_data(self, config: configuration.Configuration) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(dump(config, Dumper=Dumper))

    def get_config(self) -> configuration.Configuration:
        return deepcopy(self.config)

    def update_config(
        self,
        target_hours: Optional[float] = None,
        rounding: Optional[configuration.RoundingConfiguration] = None,
        remove_rounding: bool = False,
        include_weekends: Optional[bool] = None,
        week_start: Optional[configuration.WeekStartName] = None,
        daily_call_limit: Optional[int] = None,
        workspace_id: Optional[int] = None,
        remove_workspace_id: bool = False,
        data_path: Optional[str] = None,
        remove_data_path: bool = False,
    ) -> None:
        if target_hours is not None:
            self.config["target_hours"] = round(target_hours, 2)
        if rounding is not None:
            self.config["rounding"] = rounding
        if remove_rounding:
            self.config["rounding"] = None
        if include_weekends is not None:
            self.config["rollups"]["include_weekends"] = include_weekends
        if week_start is not None:
            self.config["rollups"]["week_start"] = week_start
        if daily_call_limit is not None:
            self.config["daily_call_limit"] = daily_call_limit
        if workspace_id is not None:
            self.config["workspace_id"] = workspace_id
        if remove_workspace_id:
            self.config["workspace_id"] = None
        if data_path is not None:
            self.config["data_path"] = data_path
        if remove_data_path:
            self.config["data_path"] = None

        self.__save_data(self.config)

    def add_non_working_days(self, days: list[str]) -> None:
        merged = set(self.config["non_working_days"]) | set(days)
        self.config["non_working_days"] = sorted(merged)
        self.__save_data(self.config)

    def remove_non_working_days(self, days: list[str]) -> None:
        remaining = set(self.config["non_working_days"]) - set(days)
        self.config["non_working_days"] = sorted(remaining)
        self.__save_data(self.config)


CONFIGURATION_REPO = ConfigurationRepository()
