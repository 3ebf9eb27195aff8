# SPDX-License-Identifier: MIT

from timetally.configuration import (
    DEFAULT_DAILY_CALL_LIMIT,
    DEFAULT_TARGET_HOURS,
    Configuration,
)


def get_configuration_template() -> Configuration:
    return {
        "target_hours": DEFAULT_TARGET_HOURS,
        "rounding": None,
        "rollups": {
            "include_weekends": False,
            "week_start": "monday",
        },
        "non_working_days": [],
        "daily_call_limit": DEFAULT_DAILY_CALL_LIMIT,
        "workspace_id": None,
        "data_path": None,
    }
