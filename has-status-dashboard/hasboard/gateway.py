"""HTTP gateway to the status backend.

Every call returns an :class:`ApiResponse` instead of raising, so callers pick
what a failure means for them: raise it (``unwrap`` / ``raise_error``), use a
default, or fall back to the offline snapshot cache (see
``hasboard.offline_store.OfflineSnapshotFallback``).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from hasboard.errors import ApiError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    ok: bool
    status_code: int
    url: str
    method: str
    data: Any = None
    error: Optional[str] = None

    def unwrap(self) -> Any:
        if not self.ok:
            raise self.to_error()
        return self.data

    def to_error(self, message: Optional[str] = None) -> ApiError:
        detail = message or self.error or f"HTTP {self.status_code}"
        return ApiError(detail, status_code=self.status_code, method=self.method, url=self.url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "status_code": self.status_code,
            "url": self.url,
            "method": self.method,
            "data": self.data,
            "error": self.error,
        }


Fallback = Callable[[ApiResponse], Any]


def raise_error(response: ApiResponse) -> Any:
    raise response.to_error()


def use_default(value: Any) -> Fallback:
    def _fallback(response: ApiResponse) -> Any:
        logger.warning("%s %s failed (%s); using default", response.method, response.url, response.error)
        return value

    return _fallback


def resolve(response: ApiResponse, fallback: Optional[Fallback] = None) -> Any:
    """Return the response data, or hand the failed response to ``fallback``."""
    if response.ok:
        return response.data
    return (fallback or raise_error)(response)


def _as_list(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return [d for d in data if isinstance(d, dict)]
    # some deployments wrap collections as {"items": [...]}
    if isinstance(data, dict):
        for key in ("items", "data", "results"):
            if isinstance(data.get(key), list):
                return [d for d in data[key] if isinstance(d, dict)]
    return []


class DashboardApiClient:
    """Thin wrapper over the status REST API.

    No retries and no caching; each request carries ``timeout_seconds``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.timeout_seconds = int(timeout_seconds)
        self._session = session or requests.Session()

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
    ) -> ApiResponse:
        method_u = (method or "GET").upper().strip()
        if not path.startswith("/"):
            path = "/" + path
        url = f"{self.base_url}{path}"

        headers = {"Accept": "application/json"}
        if json_body is not None:
            headers["Content-Type"] = "application/json"

        try:
            resp = self._session.request(
                method_u,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method_u, url, exc)
            return ApiResponse(ok=False, status_code=0, url=url, method=method_u, error=str(exc))

        text = resp.text or ""
        parsed: Any = None
        if text:
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None

        status = int(resp.status_code)
        if 200 <= status < 300:
            return ApiResponse(
                ok=True,
                status_code=status,
                url=url,
                method=method_u,
                data=parsed if parsed is not None else text,
            )

        if isinstance(parsed, dict) and (parsed.get("error") or parsed.get("message")):
            error = str(parsed.get("error") or parsed.get("message"))
        elif text:
            error = text[:500]
        else:
            error = f"HTTP {status}"
        logger.warning("%s %s -> %s: %s", method_u, url, status, error)
        return ApiResponse(ok=False, status_code=status, url=url, method=method_u, data=parsed, error=error)

    # ---------------- tasks (phases) ----------------

    def list_tasks(self, client_id: Optional[str] = None) -> ApiResponse:
        params = {"clientId": client_id} if client_id else None
        return self._list("GET", "/api/phases", params=params)

    def create_task(self, payload: Dict[str, Any]) -> ApiResponse:
        return self.request("POST", "/api/phases", json_body=payload)

    def update_task(self, task_id: str, payload: Dict[str, Any]) -> ApiResponse:
        return self.request("PUT", f"/api/phases/{task_id}", json_body=payload)

    def delete_task(self, task_id: str) -> ApiResponse:
        return self.request("DELETE", f"/api/phases/{task_id}")

    def mass_update(self, ids: List[str], updates: Dict[str, Any], client_id: Optional[str] = None) -> ApiResponse:
        body: Dict[str, Any] = {"ids": list(ids), "updates": dict(updates)}
        if client_id:
            body["clientId"] = client_id
        return self.request("PATCH", "/api/phases/unified-mass-update", json_body=body)

    # ---------------- team ----------------

    def list_team(self, client_id: Optional[str] = None) -> ApiResponse:
        params = {"clientId": client_id} if client_id else None
        return self._list("GET", "/api/team", params=params)

    def invite_member(self, payload: Dict[str, Any]) -> ApiResponse:
        return self.request("POST", "/api/invite", json_body=payload)

    def update_member(self, member_id: str, payload: Dict[str, Any]) -> ApiResponse:
        return self.request("PUT", f"/api/team/{member_id}", json_body=payload)

    def delete_member(self, member_id: str) -> ApiResponse:
        return self.request("DELETE", f"/api/team/{member_id}")

    # ---------------- clients ----------------

    def list_clients(self) -> ApiResponse:
        return self._list("GET", "/api/clients")

    def create_client(self, payload: Dict[str, Any]) -> ApiResponse:
        return self.request("POST", "/api/clients", json_body=payload)

    def update_client(self, fac_code: str, payload: Dict[str, Any]) -> ApiResponse:
        return self.request("PUT", f"/api/clients/{fac_code}", json_body=payload)

    def delete_client(self, fac_code: str) -> ApiResponse:
        return self.request("DELETE", f"/api/clients/{fac_code}")

    # ---------------- internal team ----------------

    def list_internal_team(self) -> ApiResponse:
        return self._list("GET", "/api/internal-team")

    def add_internal_member(self, payload: Dict[str, Any]) -> ApiResponse:
        return self.request("POST", "/api/internal-team", json_body=payload)

    def get_internal_member(self, username: str) -> ApiResponse:
        return self.request("GET", f"/api/internal-team/{quote(username, safe='')}")

    def org_options(self) -> ApiResponse:
        return self.request("GET", "/api/org-options")

    def _list(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        resp = self.request(method, path, params=params)
        if not resp.ok:
            return resp
        return ApiResponse(
            ok=True,
            status_code=resp.status_code,
            url=resp.url,
            method=resp.method,
            data=_as_list(resp.data),
        )
