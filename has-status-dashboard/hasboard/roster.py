"""Team roster of a client: invite, edit, delete, mark not working."""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional

from hasboard.errors import GuardViolation, ValidationError
from hasboard.gateway import DashboardApiClient, Fallback, resolve
from hasboard.models import EMAIL_RE, Task, TeamMember

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]


def _always(_message: str) -> bool:
    return True


def validate_member_fields(username: str, email: str, *, check_email: bool = True) -> None:
    if not (username or "").strip() or not (email or "").strip():
        raise ValidationError("Please enter a valid username and email")
    if check_email and not EMAIL_RE.match(email.strip()):
        raise ValidationError("Please enter a valid username and email")


class TeamRoster:
    def __init__(
        self,
        api: DashboardApiClient,
        client_id: str,
        *,
        tasks_provider: Callable[[], Iterable[Task]] = list,
        confirm: Confirm = _always,
        validate_email: bool = True,
        sentinel_org: str = "PHG",
        fallback: Optional[Fallback] = None,
    ) -> None:
        self.api = api
        self.client_id = client_id
        self.tasks_provider = tasks_provider
        self.confirm = confirm
        self.validate_email = validate_email
        self.sentinel_org = sentinel_org
        self.fallback = fallback
        self.members: List[TeamMember] = []

    def refresh(self) -> List[TeamMember]:
        resp = self.api.list_team(self.client_id)
        if resp.ok:
            remember = getattr(self.fallback, "remember", None)
            if remember is not None:
                remember(resp.data)
        raw = resolve(resp, self.fallback) or []
        self.members = [TeamMember.from_api(r) for r in raw if isinstance(r, dict)]
        return self.members

    def get(self, member_id: str) -> TeamMember:
        for m in self.members:
            if m.id == member_id:
                return m
        raise ValidationError(f"Team member {member_id} not found; refresh and try again")

    def find_by_username(self, username: str) -> Optional[TeamMember]:
        for m in self.members:
            if m.username == username:
                return m
        return None

    def active_members(self) -> List[TeamMember]:
        return [m for m in self.members if not m.not_working]

    def assigned_task_count(self, member: TeamMember) -> int:
        return sum(1 for t in self.tasks_provider() if t.assigned_to == member.username)

    def add_member(self, username: str, email: str, org: str = "") -> TeamMember:
        username = (username or "").strip()
        email = (email or "").strip()
        validate_member_fields(username, email, check_email=self.validate_email)
        payload = {"username": username, "email": email, "org": (org or "").strip(), "clientId": self.client_id}
        resp = self.api.invite_member(payload)
        if not resp.ok:
            raise resp.to_error(f"Failed to add user: {resp.error}")
        logger.info("Invited %s to %s", username, self.client_id)
        self.refresh()
        return self.find_by_username(username) or TeamMember(username=username, email=email, org=payload["org"])

    def edit_member(self, member_id: str, **changes: Any) -> TeamMember:
        member = self.get(member_id)
        username = str(changes.get("username", member.username)).strip()
        email = str(changes.get("email", member.email)).strip()
        if "username" in changes or "email" in changes:
            validate_member_fields(username, email, check_email=self.validate_email)
        payload = member.to_payload()
        payload.update(changes)
        payload["username"] = username
        payload["email"] = email
        self.api.update_member(member_id, payload).unwrap()
        logger.info("Updated team member %s", member_id)
        self.refresh()
        return self.get(member_id) if any(m.id == member_id for m in self.members) else member

    def delete_member(self, member_id: str) -> bool:
        member = self.get(member_id)
        count = self.assigned_task_count(member)
        if count > 0:
            raise GuardViolation(
                f"{member.username} has {count} assigned task(s). "
                "Reassign them or mark the member as not working before deleting."
            )
        if not self.confirm(f"Are you sure you want to delete {member.username}?"):
            return False
        self.api.delete_member(member_id).unwrap()
        logger.info("Deleted team member %s (%s)", member.username, member_id)
        self.refresh()
        return True

    def mark_not_working(self, member_id: str) -> bool:
        member = self.get(member_id)
        message = (
            f"Mark {member.username} as not working? "
            f"All of their tasks will be reassigned to {self.sentinel_org}."
        )
        if not self.confirm(message):
            return False
        # reassignment and flag flip happen in one backend call
        payload = {"not_working": True, "reassignTasksTo": self.sentinel_org, "clientId": self.client_id}
        self.api.update_member(member_id, payload).unwrap()
        logger.info("Marked %s not working; tasks reassigned to %s", member.username, self.sentinel_org)
        self.refresh()
        return True
