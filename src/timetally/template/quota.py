# SPDX-License-Identifier: MIT

from timetally.model.quota import QUOTA_VERSION, Quota


def get_quota_template(today: str) -> Quota:
    return {
        "version": QUOTA_VERSION,
        "date": today,
        "used_calls": 0,
    }
