# SPDX-License-Identifier: MIT

from typing import Optional, TypedDict

import pendulum


class TimeEntry(TypedDict):
    id: int
    description: Optional[str]
    duration: int  # seconds, negative while the entry is still running
    start: pendulum.DateTime
    stop: Optional[pendulum.DateTime]
    project_id: Optional[int]
