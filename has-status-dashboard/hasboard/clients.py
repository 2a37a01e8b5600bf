from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List, Optional, Sequence
from urllib.parse import urlencode

from hasboard.errors import ApiError, ValidationError
from hasboard.gateway import DashboardApiClient, Fallback, resolve
from hasboard.models import FAC_CODE_RE, Client

logger = logging.getLogger(__name__)


def validate_fac_code(code: str) -> str:
    normalized = (code or "").strip().upper()
    if not FAC_CODE_RE.match(normalized):
        raise ValidationError("Client code must be exactly 3 letters or digits (e.g. ABC)")
    return normalized


def client_url(base_url: str, fac_code: str) -> str:
    return f"{base_url.rstrip('/')}/?{urlencode({'client': fac_code})}"


def admin_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/?admin=true"


class ClientDirectory:
    """Tenant list for the admin panel.

    When the API cannot be reached the offline snapshot is tried first, then
    the built-in catalog.
    """

    def __init__(
        self,
        api: DashboardApiClient,
        catalog: Sequence[Client] = (),
        *,
        fallback: Optional[Fallback] = None,
    ) -> None:
        self.api = api
        self.catalog = list(catalog)
        self.fallback = fallback
        self.clients: List[Client] = list(self.catalog)
        self.from_catalog = True

    def _offline(self, response) -> list:
        if self.fallback is not None:
            try:
                return self.fallback(response)
            except ApiError as exc:
                logger.info("No offline client snapshot: %s", exc)
        logger.warning("Client list unavailable (%s); using built-in catalog", response.error)
        self.from_catalog = True
        return [c.to_payload() | {"logo": c.logo, "description": c.description} for c in self.catalog]

    def refresh(self) -> List[Client]:
        resp = self.api.list_clients()
        if resp.ok:
            remember = getattr(self.fallback, "remember", None)
            if remember is not None:
                remember(resp.data)
        self.from_catalog = False
        raw = resolve(resp, self._offline) or []
        self.clients = [Client.from_api(r) for r in raw if isinstance(r, dict)]
        return self.clients

    def get(self, fac_code: str) -> Optional[Client]:
        code = (fac_code or "").upper()
        for c in self.clients:
            if c.facCode == code:
                return c
        return None

    def create(self, client: Client) -> Client:
        code = validate_fac_code(client.facCode)
        if not client.name.strip():
            raise ValidationError("Please enter a client name")
        if self.get(code) is not None:
            raise ValidationError(f"Client code {code} is already in use")
        client = replace(client, facCode=code)
        self.api.create_client(client.to_payload()).unwrap()
        logger.info("Created client %s (%s)", code, client.name)
        self.refresh()
        return client

    def update(self, fac_code: str, **changes: Any) -> Client:
        current = self.get(fac_code)
        if current is None:
            raise ValidationError(f"Unknown client {fac_code}")
        if "facCode" in changes:
            new_code = validate_fac_code(changes["facCode"])
            if new_code != current.facCode and self.get(new_code) is not None:
                raise ValidationError(f"Client code {new_code} is already in use")
            changes["facCode"] = new_code
        updated = replace(current, **changes)
        self.api.update_client(current.facCode, updated.to_payload()).unwrap()
        logger.info("Updated client %s", current.facCode)
        self.refresh()
        return updated

    def delete(self, fac_code: str) -> None:
        code = validate_fac_code(fac_code)
        self.api.delete_client(code).unwrap()
        logger.info("Deleted client %s", code)
        self.refresh()
