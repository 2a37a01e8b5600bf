"""Bulk task insertion: the standard onboarding template and uploaded files.

Upload format: plain text, six lines per task::

    goal
    need (ETC date, may be blank)
    comments
    execute (Monthly / Weekly / One-Time)
    commentArea (feedback)
    <reserved, ignored>

There is no escaping, so fields cannot contain newlines. A trailing group
shorter than six lines is dropped.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from hasboard.errors import ApiError, TemplateError
from hasboard.gateway import DashboardApiClient
from hasboard.models import Task, TeamMember

logger = logging.getLogger(__name__)

LINES_PER_TASK = 6

STANDARD_TEMPLATE: List[Tuple[str, str, str]] = [
    ("Review monthly HAS census report", "Confirm admissions and discharges match the EHR", "Monthly"),
    ("Validate hospitalist schedule", "Check coverage gaps for the upcoming month", "Monthly"),
    ("Reconcile provider credentialing", "Verify privileges are current for all providers", "Monthly"),
    ("Audit documentation compliance", "Sample charts for H&P and discharge summary timeliness", "Monthly"),
    ("Review length-of-stay outliers", "Flag encounters above the GMLOS threshold", "Weekly"),
    ("Discuss readmissions with case management", "Review 30-day readmissions and root causes", "Monthly"),
    ("Check billing and coding queue", "Resolve held claims and coding queries", "Weekly"),
    ("Update escalation contact list", "Confirm after-hours contacts with the nursing supervisor", "One-Time"),
    ("Confirm EHR access for new providers", "Request accounts and order-set access", "One-Time"),
    ("Schedule quarterly leadership meeting", "Agenda: quality metrics, staffing, growth", "One-Time"),
    ("Review patient satisfaction scores", "Share HCAHPS trends with the medical director", "Monthly"),
    ("Track observation vs inpatient status", "Review status determinations with utilization review", "Weekly"),
    ("Verify transfer center workflow", "Confirm accept/decline process and call logging", "One-Time"),
    ("Review sepsis bundle compliance", "Pull SEP-1 abstraction results", "Monthly"),
    ("Collect provider timesheets", "Submit approved hours to payroll", "Weekly"),
    ("Kick-off implementation checklist", "Walk through onboarding milestones with the client", "One-Time"),
]


def parse_template_text(text: str) -> List[Task]:
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines and lines[-1] == "":
        # final newline
        lines.pop()

    tasks: List[Task] = []
    full = len(lines) - len(lines) % LINES_PER_TASK
    for start in range(0, full, LINES_PER_TASK):
        goal, need, comments, execute, comment_area, _reserved = (
            line.strip() for line in lines[start:start + LINES_PER_TASK]
        )
        if not goal:
            logger.warning("Template lines %d-%d have no goal; skipped", start + 1, start + LINES_PER_TASK)
            continue
        tasks.append(
            Task(goal=goal, need=need, comments=comments, execute=execute, commentArea=comment_area)
        )
    if len(lines) != full:
        logger.info("Dropped %d trailing template line(s)", len(lines) - full)
    return tasks


def decode_upload(raw: Union[bytes, str]) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise TemplateError("Template file must be UTF-8 text") from exc


def find_duplicates(parsed: Iterable[Task], existing: Iterable[Task]) -> List[Task]:
    seen = {(t.goal, t.comments) for t in existing}
    return [t for t in parsed if (t.goal, t.comments) in seen]


class TemplateEngine:
    def __init__(
        self,
        api: DashboardApiClient,
        *,
        template_user: str = "PHGHAS",
        template_email: str = "",
        template_org: str = "PHG",
        default_stage: str = "Outstanding",
        bucket_field: str = "stage",
    ) -> None:
        self.api = api
        self.template_user = template_user
        self.template_email = template_email
        self.template_org = template_org
        self.default_stage = default_stage
        self.bucket_field = bucket_field

    def ensure_template_member(self, client_id: str) -> bool:
        """Invite the template owner if the client lacks one; True if created."""
        team = self.api.list_team(client_id).unwrap() or []
        if any(TeamMember.from_api(m).username == self.template_user for m in team):
            return False
        payload = {
            "username": self.template_user,
            "email": self.template_email,
            "org": self.template_org,
            "clientId": client_id,
        }
        self.api.invite_member(payload).unwrap()
        logger.info("Created template member %s for %s", self.template_user, client_id)
        return True

    def apply_standard_template(self, client_id: str) -> int:
        self.ensure_template_member(client_id)
        tasks = [
            Task(goal=goal, comments=comments, execute=frequency)
            for goal, comments, frequency in STANDARD_TEMPLATE
        ]
        return self._insert(client_id, tasks)

    def upload_template(
        self,
        client_id: str,
        raw: Union[bytes, str],
        *,
        confirm: Callable[[str], bool] = lambda _msg: True,
        existing: Optional[Sequence[Task]] = None,
    ) -> int:
        tasks = parse_template_text(decode_upload(raw))
        if not tasks:
            raise TemplateError("No complete task found in the template file")

        duplicates: List[Task] = []
        try:
            if existing is None:
                rows = self.api.list_tasks(client_id).unwrap() or []
                existing = [Task.from_api(r, self.bucket_field) for r in rows]
            duplicates = find_duplicates(tasks, existing)
        except ApiError as exc:
            # the check is advisory; proceed without it
            logger.warning("Duplicate check failed for %s: %s", client_id, exc)

        if duplicates:
            preview = ", ".join(t.goal for t in duplicates[:5])
            message = f"{len(duplicates)} task(s) already exist for this client ({preview}). Insert anyway?"
            if not confirm(message):
                logger.info("Template upload for %s cancelled on duplicates", client_id)
                return 0
        return self._insert(client_id, tasks)

    def _insert(self, client_id: str, tasks: Sequence[Task]) -> int:
        created = 0
        for t in tasks:
            payload = t.with_changes(
                assigned_to=self.template_user,
                stage=self.default_stage,
                clientId=client_id,
            ).to_payload(self.bucket_field)
            resp = self.api.create_task(payload)
            if not resp.ok:
                # no rollback; what went in stays in
                raise resp.to_error(f"Template stopped after {created} of {len(tasks)} task(s): {resp.error}")
            created += 1
        logger.info("Inserted %d template task(s) for %s", created, client_id)
        return created
