# SPDX-License-Identifier: MIT

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional, cast

from timetally import configuration, time
from timetally.model.quota import QUOTA_VERSION, Quota
from timetally.template.quota import get_quota_template

logger = logging.getLogger(__name__)


def normalize_quota(quota: Quota, today: str) -> bool:
    """Reset the ledger when it belongs to another day or schema version.

    Returns True when the ledger was reset.
    """
    if quota["date"] == today and quota["version"] == QUOTA_VERSION:
        return False
    quota["version"] = QUOTA_VERSION
    quota["date"] = today
    quota["used_calls"] = 0
    return True


class QuotaRepository:
    """Daily budget of remote calls, written through to disk on every change."""

    def __init__(
        self,
        path: Optional[Path] = None,
        limit: int = configuration.DEFAULT_DAILY_CALL_LIMIT,
        today: Callable[[], str] = time.today_str,
    ) -> None:
        self._path = path
        self._limit = limit
        self._today = today
        self._quota: Optional[Quota] = None

    @property
    def path(self) -> Path:
        return self._path or configuration.DATA_QUOTA_PATH

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def quota(self) -> Quota:
        if self._quota is None:
            self.__load_data()
        if self._quota is None:
            raise ValueError()
        return self._quota

    @property
    def used(self) -> int:
        return self.quota["used_calls"]

    def __load_data(self) -> None:
        today = self._today()
        raw = self.__read_raw()
        if raw is None:
            self._quota = get_quota_template(today)
            return

        used_calls = raw.get("used_calls", 0)
        if not isinstance(used_calls, int) or used_calls < 0:
            self._quota = get_quota_template(today)
            return

        quota = cast(
            Quota,
            {
                "version": raw.get("version"),
                "date": raw.get("date"),
                "used_calls": used_calls,
            },
        )
        self._quota = quota
        if normalize_quota(quota, today):
            logger.info("quota ledger reset for %s", today)
            self.__save_data()

    def __read_raw(self) -> Optional[dict[str, Any]]:
        if not self.path.is_file():
            return None
        try:
            raw = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("ignoring unreadable quota file %s: %s", self.path, e)
            return None
        if not isinstance(raw, dict):
            return None
        return raw

    def __save_data(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.quota, indent=2))

    def remaining(self) -> int:
        return max(0, self._limit - self.quota["used_calls"])

    def is_exhausted(self) -> bool:
        return self.remaining() == 0

    def consume(self) -> None:
        if self.quota["used_calls"] < self._limit:
            self.quota["used_calls"] += 1
        self.__save_data()
        if self.is_exhausted():
            logger.info("daily quota of %d calls reached", self._limit)

    def ensure_today(self) -> None:
        if normalize_quota(self.quota, self._today()):
            logger.info("quota ledger reset for %s", self.quota["date"])
            self.__save_data()
