# SPDX-License-Identifier: MIT

import json
import logging
from pathlib import Path
from typing import Any, Optional, TypeVar

import pendulum

from timetally import configuration, time
from timetally.model.cache import (
    CACHE_VERSION,
    CachedData,
    CacheFile,
    TimeEntryRangeKey,
)
from timetally.model.project import Client, Project
from timetally.model.time_entry import TimeEntry
from timetally.model.workspace import Workspace
from timetally.template.cache import get_cache_template

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_SEPARATOR = "|"


def encode_range_key(key: TimeEntryRangeKey) -> str:
    return KEY_SEPARATOR.join(
        [
            str(key.workspace_id),
            time.datetime_to_iso_str(key.start),
            time.datetime_to_iso_str(key.end),
        ]
    )


def decode_range_key(raw_key: str) -> Optional[TimeEntryRangeKey]:
    parts = raw_key.split(KEY_SEPARATOR, 2)
    if len(parts) != 3:
        return None
    raw_workspace_id, raw_start, raw_end = parts
    try:
        workspace_id = int(raw_workspace_id)
    except ValueError:
        return None
    start = time.parse_rfc3339(raw_start)
    end = time.parse_rfc3339(raw_end)
    if start is None or end is None:
        return None
    return TimeEntryRangeKey(workspace_id, start, end)


def sort_time_entries(entries: list[TimeEntry]) -> list[TimeEntry]:
    return sorted(entries, key=lambda entry: (entry["start"], entry["id"]))


class CacheRepository:
    """Previously fetched remote resources for a single API token.

    Every write replaces the stored value for its key wholesale and is
    flushed to disk immediately.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._cache: Optional[CacheFile] = None
        self._token_hash: Optional[str] = None

    @property
    def path(self) -> Path:
        return self._path or configuration.DATA_CACHE_PATH

    @property
    def token_hash(self) -> Optional[str]:
        return self._token_hash

    def load(self, token_hash: str) -> None:
        if self._token_hash == token_hash and self._cache is not None:
            return
        self._token_hash = token_hash
        self._cache = self.__load_data(token_hash)

    def clear(self) -> None:
        self._cache = None
        self._token_hash = None
        if self.path.exists():
            self.path.unlink()

    def __load_data(self, token_hash: str) -> Optional[CacheFile]:
        if not self.path.is_file():
            return None
        try:
            raw = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("ignoring unreadable cache file %s: %s", self.path, e)
            return None
        if not isinstance(raw, dict) or raw.get("version") != CACHE_VERSION:
            logger.info("ignoring cache file with unexpected schema version")
            return None
        if raw.get("token_hash") != token_hash:
            logger.info("ignoring cache file written for another token")
            return None
        try:
            return self.__convert_cache_for_deserialization(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("ignoring malformed cache file %s: %s", self.path, e)
            return None

    def __save_data(self) -> None:
        if self._cache is None:
            return
        serializable_cache = self.__convert_cache_for_serialization(self._cache)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(serializable_cache, indent=2))

    def __convert_cache_for_serialization(self, cache: CacheFile) -> dict[str, Any]:
        return {
            "version": cache["version"],
            "token_hash": cache["token_hash"],
            "workspaces": cache["workspaces"],
            "projects": {
                str(workspace_id): cached
                for workspace_id, cached in cache["projects"].items()
            },
            "clients": {
                str(workspace_id): cached
                for workspace_id, cached in cache["clients"].items()
            },
            "time_entries": {
                encode_range_key(key): {
                    "data": [
                        self.__convert_time_entry_for_serialization(entry)
                        for entry in cached["data"]
                    ],
                    "fetched_at": cached["fetched_at"],
                }
                for key, cached in cache["time_entries"].items()
            },
        }

    def __convert_cache_for_deserialization(self, raw: dict[str, Any]) -> CacheFile:
        cache = get_cache_template(raw["token_hash"])
        cache["workspaces"] = raw.get("workspaces")
        for raw_workspace_id, cached in (raw.get("projects") or {}).items():
            cache["projects"][int(raw_workspace_id)] = cached
        for raw_workspace_id, cached in (raw.get("clients") or {}).items():
            cache["clients"][int(raw_workspace_id)] = cached
        for raw_key, cached in (raw.get("time_entries") or {}).items():
            key = decode_range_key(raw_key)
            if key is None:
                logger.warning("dropping cached time entries with bad key %r", raw_key)
                continue
            cache["time_entries"][key] = {
                "data": [
                    self.__convert_time_entry_for_deserialization(entry)
                    for entry in cached["data"]
                ],
                "fetched_at": cached["fetched_at"],
            }
        return cache

    def __convert_time_entry_for_serialization(self, entry: TimeEntry) -> dict[str, Any]:
        serializable_entry: dict[str, Any] = dict(entry)
        serializable_entry["start"] = time.datetime_to_iso_str(entry["start"])
        serializable_entry["stop"] = time.datetime_to_iso_str_optional(entry["stop"])
        return serializable_entry

    def __convert_time_entry_for_deserialization(self, entry: dict[str, Any]) -> TimeEntry:
        return {
            "id": int(entry["id"]),
            "description": entry.get("description"),
            "duration": int(entry["duration"]),
            "start": time.datetime_from_str(entry["start"]),
            "stop": time.datetime_from_str_optional(entry.get("stop")),
            "project_id": entry.get("project_id"),
        }

    def __cache_mut(self) -> CacheFile:
        if self._cache is None:
            if self._token_hash is None:
                raise ValueError("cache written before a token hash was loaded")
            self._cache = get_cache_template(self._token_hash)
        return self._cache

    def __wrap(self, existing: Optional[CachedData[T]], value: T) -> CachedData[T]:
        # The fetch timestamp only moves when the stored value changes
        if existing is not None and existing["data"] == value:
            return existing
        return {"data": value, "fetched_at": time.now_rfc3339()}

    def get_workspaces(self) -> Optional[CachedData[list[Workspace]]]:
        if self._cache is None:
            return None
        return self._cache["workspaces"]

    def put_workspaces(self, workspaces: list[Workspace]) -> None:
        cache = self.__cache_mut()
        cache["workspaces"] = self.__wrap(cache["workspaces"], workspaces)
        self.__save_data()

    def get_projects(self, workspace_id: int) -> Optional[CachedData[list[Project]]]:
        if self._cache is None:
            return None
        return self._cache["projects"].get(workspace_id)

    def put_projects(self, workspace_id: int, projects: list[Project]) -> None:
        cache = self.__cache_mut()
        cache["projects"][workspace_id] = self.__wrap(
            cache["projects"].get(workspace_id), projects
        )
        self.__save_data()

    def get_clients(self, workspace_id: int) -> Optional[CachedData[list[Client]]]:
        if self._cache is None:
            return None
        return self._cache["clients"].get(workspace_id)

    def put_clients(self, workspace_id: int, clients: list[Client]) -> None:
        cache = self.__cache_mut()
        cache["clients"][workspace_id] = self.__wrap(
            cache["clients"].get(workspace_id), clients
        )
        self.__save_data()

    def get_time_entries(
        self, key: TimeEntryRangeKey
    ) -> Optional[CachedData[list[TimeEntry]]]:
        if self._cache is None:
            return None
        return self._cache["time_entries"].get(key)

    def put_time_entries(self, key: TimeEntryRangeKey, entries: list[TimeEntry]) -> None:
        cache = self.__cache_mut()
        # Reinserted so dict order follows write order for the range merge
        previous = cache["time_entries"].pop(key, None)
        cache["time_entries"][key] = self.__wrap(previous, entries)
        self.__save_data()

    def find_time_entries(
        self, key: TimeEntryRangeKey
    ) -> Optional[CachedData[list[TimeEntry]]]:
        """
        Look up time entries for a range, merging overlapping cached ranges.

        An exact key match is returned as stored. Otherwise every cached range
        of the same workspace that intersects the requested dates contributes
        its entries dated inside the request; duplicates are resolved by id,
        the range written last wins. The synthesized fetch timestamp is the most
        recent parseable one among contributing ranges, else a raw unparseable
        value, else now.

        Returns:
            None when no cached range intersects the request
        """
        exact = self.get_time_entries(key)
        if exact is not None:
            return exact
        if self._cache is None:
            return None

        start_date = key.start_date
        end_date = key.end_date
        entries_by_id: dict[int, TimeEntry] = {}
        latest_fetched_at: Optional[pendulum.DateTime] = None
        latest_fetched_raw: Optional[str] = None
        matched = False

        for cached_key, cached in self._cache["time_entries"].items():
            if cached_key.workspace_id != key.workspace_id or not cached_key.intersects(
                start_date, end_date
            ):
                continue
            matched = True

            for entry in cached["data"]:
                entry_date = time.local_date(entry["start"])
                if start_date <= entry_date <= end_date:
                    entries_by_id[entry["id"]] = entry

            fetched_at = time.parse_rfc3339(cached["fetched_at"])
            if fetched_at is None:
                latest_fetched_raw = cached["fetched_at"]
            elif latest_fetched_at is None or fetched_at > latest_fetched_at:
                latest_fetched_at = fetched_at

        if not matched:
            return None

        if latest_fetched_at is not None:
            synthesized_at = time.datetime_to_iso_str(latest_fetched_at)
        elif latest_fetched_raw is not None:
            synthesized_at = latest_fetched_raw
        else:
            synthesized_at = time.now_rfc3339()

        return {
            "data": sort_time_entries(list(entries_by_id.values())),
            "fetched_at": synthesized_at,
        }

    def collect_time_entries(
        self, workspace_id: int, start: pendulum.Date, end: pendulum.Date
    ) -> list[TimeEntry]:
        """Every cached entry of the workspace dated within [start, end], deduplicated by id."""
        if self._cache is None:
            return []

        entries_by_id: dict[int, TimeEntry] = {}
        for cached_key, cached in self._cache["time_entries"].items():
            if cached_key.workspace_id != workspace_id or not cached_key.intersects(
                start, end
            ):
                continue
            for entry in cached["data"]:
                if start <= time.local_date(entry["start"]) <= end:
                    entries_by_id[entry["id"]] = entry
        return list(entries_by_id.values())
