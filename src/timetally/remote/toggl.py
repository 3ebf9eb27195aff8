# SPDX-License-Identifier: MIT

import logging
from typing import Any, Callable, Optional, TypeVar

import requests
from requests.auth import HTTPBasicAuth

from timetally import time
from timetally.model.project import Client, Project
from timetally.model.time_entry import TimeEntry
from timetally.model.workspace import Workspace
from timetally.remote.source import (
    NetworkError,
    PaymentRequired,
    RateLimited,
    ServerError,
    Unauthorized,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_URL = "https://api.track.toggl.com/api/v9"
USER_AGENT = "timetally"
REQUEST_TIMEOUT_SECONDS = 30


def convert_workspace(raw: dict[str, Any]) -> Workspace:
    return {"id": int(raw["id"]), "name": str(raw["name"])}


def convert_project(raw: dict[str, Any]) -> Project:
    client_id = raw.get("client_id", raw.get("cid"))
    return {
        "id": int(raw["id"]),
        "name": str(raw["name"]),
        "client_id": int(client_id) if client_id is not None else None,
        "client_name": raw.get("client_name"),
    }


def convert_client(raw: dict[str, Any]) -> Client:
    return {"id": int(raw["id"]), "name": str(raw["name"])}


def convert_time_entry(raw: dict[str, Any]) -> TimeEntry:
    project_id = raw.get("project_id", raw.get("pid"))
    return {
        "id": int(raw["id"]),
        "description": raw.get("description"),
        "duration": int(raw["duration"]),
        "start": time.datetime_from_str(raw["start"]),
        "stop": time.datetime_from_str_optional(raw.get("stop")),
        "project_id": int(project_id) if project_id is not None else None,
    }


class TogglClient:
    """Toggl Track API v9 client; every failure is raised as a RemoteError subclass."""

    def __init__(
        self,
        token: str,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(
            {"User-Agent": USER_AGENT, "Content-Type": "application/json"}
        )
        self._auth = HTTPBasicAuth(token, "api_token")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def fetch_workspaces(self) -> list[Workspace]:
        return self.__fetch_list("/workspaces", convert_workspace)

    def fetch_projects(self, workspace_id: int) -> list[Project]:
        return self.__fetch_list(f"/workspaces/{workspace_id}/projects", convert_project)

    def fetch_project(self, workspace_id: int, project_id: int) -> Project:
        payload = self.__get(f"/workspaces/{workspace_id}/projects/{project_id}")
        return self.__convert(payload, convert_project)

    def fetch_clients(self, workspace_id: int) -> list[Client]:
        return self.__fetch_list(f"/workspaces/{workspace_id}/clients", convert_client)

    def fetch_time_entries(self, start: str, end: str) -> list[TimeEntry]:
        return self.__fetch_list(
            "/me/time_entries",
            convert_time_entry,
            params={"start_date": start, "end_date": end},
        )

    def __fetch_list(
        self,
        path: str,
        convert: Callable[[dict[str, Any]], T],
        params: Optional[dict[str, str]] = None,
    ) -> list[T]:
        payload = self.__get(path, params)
        # The API answers null rather than [] for empty collections
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise NetworkError(f"Unexpected response from {path}")
        return [self.__convert(item, convert) for item in payload]

    def __convert(self, payload: Any, convert: Callable[[dict[str, Any]], T]) -> T:
        try:
            return convert(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Malformed Toggl response: {e}") from e

    def __get(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("GET %s %s", url, params or "")
        try:
            response = self._session.get(
                url, params=params, auth=self._auth, timeout=self._timeout
            )
        except requests.exceptions.RequestException as e:
            logger.warning("request to %s failed: %s", url, e)
            raise NetworkError(str(e)) from e

        status = response.status_code
        if not 200 <= status < 300:
            logger.warning("GET %s returned %d", url, status)
        if status in (401, 403):
            raise Unauthorized()
        if status == 402:
            raise PaymentRequired()
        if status == 429:
            raise RateLimited()
        if 500 <= status < 600:
            raise ServerError(f"Toggl API error: {status} {response.reason}")
        if not 200 <= status < 300:
            raise NetworkError(f"Toggl API error: {status} {response.reason}")

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from Toggl: {e}") from e
