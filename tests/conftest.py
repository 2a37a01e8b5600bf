"""Pytest fixtures: a fake requests session standing in for the status API."""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

import pytest
import requests

from hasboard.gateway import DashboardApiClient
from hasboard.models import Task

BASE_URL = "http://api.test"

Handler = Union[Tuple[int, Any], Callable[[Optional[dict], Any], Tuple[int, Any]]]


class FakeResponse:
    def __init__(self, status_code: int, body: Any = None) -> None:
        self.status_code = status_code
        if body is None:
            self.text = ""
        elif isinstance(body, str):
            self.text = body
        else:
            self.text = json.dumps(body)


class FakeSession:
    """Routes ``(METHOD, path)`` to canned answers and records every call."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.calls: List[Dict[str, Any]] = []
        self.down = False

    def route(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method.upper(), path)] = handler

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append({"method": method, "path": path, "params": params, "json": json})
        if self.down:
            raise requests.ConnectionError("connection refused")
        handler = self.routes.get((method, path))
        if handler is None:
            return FakeResponse(404, {"error": f"no route {method} {path}"})
        if callable(handler):
            status, body = handler(params, json)
        else:
            status, body = handler
        return FakeResponse(status, body)

    def calls_to(self, method: str, path: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            c for c in self.calls
            if c["method"] == method and (path is None or c["path"] == path)
        ]


@pytest.fixture()
def fake() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def api(fake: FakeSession) -> DashboardApiClient:
    return DashboardApiClient(base_url=BASE_URL, timeout_seconds=5, session=fake)


def make_task(task_id: str, stage: str = "Outstanding", assigned_to: str = "team", need: str = "", **extra) -> Task:
    return Task(
        id=task_id,
        goal=extra.pop("goal", f"Goal {task_id}"),
        need=need,
        comments=extra.pop("comments", ""),
        execute=extra.pop("execute", "One-Time"),
        stage=stage,
        commentArea=extra.pop("commentArea", ""),
        assigned_to=assigned_to,
        clientId=extra.pop("clientId", "ABC"),
    )


def task_json(task_id: str, stage: str = "Outstanding", assigned_to: str = "team", need: str = "", **extra) -> dict:
    body = make_task(task_id, stage, assigned_to, need, **extra).to_payload()
    body["_id"] = task_id
    return body
