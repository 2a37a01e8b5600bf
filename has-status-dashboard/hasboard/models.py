"""Domain records exchanged with the status API.

Records are plain dataclasses; ``from_api`` accepts the loosely shaped JSON the
backend returns and ``to_payload`` produces the body sent back to it.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

STANDARD_PHASES = ["Outstanding", "Review/Discussion", "In Process", "Resolved"]
LEGACY_PHASES = ["Design", "Development", "Alpha Usage", "Beta Release (Web)"]
PHASE_SETS = {"standard": STANDARD_PHASES, "legacy": LEGACY_PHASES}
# record key that carries the phase name for each set
BUCKET_FIELDS = {"standard": "stage", "legacy": "phase"}

FREQUENCIES = ["Monthly", "Weekly", "One-Time"]
TEAM_ASSIGNEE = "team"

FAC_CODE_RE = re.compile(r"^[A-Z0-9]{3}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _str(v: Any) -> str:
    if v is None:
        return ""
    return str(v)


def normalize_date(value: Any) -> str:
    """Return ``YYYY-MM-DD`` for dates, the stripped string otherwise."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return _str(value).strip()


@dataclass
class Task:
    id: Optional[str] = None
    goal: str = ""
    need: str = ""
    comments: str = ""
    execute: str = "One-Time"
    stage: str = "Outstanding"
    commentArea: str = ""
    assigned_to: str = TEAM_ASSIGNEE
    clientId: str = ""
    # record's own "stage" value when the bucket lives under "phase"
    legacy_stage: str = field(default="", repr=False, compare=False)

    @classmethod
    def from_api(cls, raw: Dict[str, Any], bucket_field: str = "stage") -> "Task":
        """Read a task; ``bucket_field`` names the key that holds the phase.

        Legacy records keep the phase under ``phase`` and an unrelated
        status under ``stage``.
        """
        task_id = raw.get("id", raw.get("_id"))
        other = "stage" if bucket_field == "phase" else "phase"
        return cls(
            id=_str(task_id) if task_id is not None else None,
            goal=_str(raw.get("goal")),
            need=normalize_date(raw.get("need")),
            comments=_str(raw.get("comments")),
            execute=_str(raw.get("execute")) or "One-Time",
            stage=_str(raw.get(bucket_field) or raw.get(other)),
            commentArea=_str(raw.get("commentArea")),
            assigned_to=_str(raw.get("assigned_to")) or TEAM_ASSIGNEE,
            clientId=_str(raw.get("clientId")),
            legacy_stage=_str(raw.get("stage")) if bucket_field == "phase" else "",
        )

    def to_payload(self, bucket_field: str = "stage") -> Dict[str, Any]:
        body = asdict(self)
        body.pop("id")
        legacy_stage = body.pop("legacy_stage")
        body["need"] = normalize_date(self.need)
        if bucket_field == "phase":
            body["phase"] = body.pop("stage")
            body["stage"] = legacy_stage
        return body

    def with_changes(self, **changes: Any) -> "Task":
        if "need" in changes:
            changes["need"] = normalize_date(changes["need"])
        return replace(self, **changes)


@dataclass
class TeamMember:
    _id: Optional[str] = None
    username: str = ""
    email: str = ""
    org: str = ""
    not_working: bool = False
    assignedClients: List[str] = field(default_factory=list)

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def name(self) -> str:
        return self.username

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "TeamMember":
        member_id = raw.get("_id", raw.get("id"))
        clients = raw.get("assignedClients") or []
        if isinstance(clients, str):
            clients = [clients]
        return cls(
            _id=_str(member_id) if member_id is not None else None,
            username=_str(raw.get("username") or raw.get("name")),
            email=_str(raw.get("email")),
            org=_str(raw.get("org")),
            not_working=bool(raw.get("not_working", False)),
            assignedClients=[_str(c) for c in clients],
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "email": self.email,
            "org": self.org,
            "not_working": bool(self.not_working),
            "assignedClients": list(self.assignedClients),
        }


@dataclass
class Client:
    facCode: str
    name: str = ""
    color: str = "#2563eb"
    city: str = ""
    state: str = ""
    mainContact: str = ""
    phoneNumber: str = ""
    filePath: str = ""
    logo: str = "🏥"
    description: str = ""

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Client":
        return cls(
            facCode=_str(raw.get("facCode") or raw.get("id")).upper(),
            name=_str(raw.get("name")),
            color=_str(raw.get("color")) or "#2563eb",
            city=_str(raw.get("city")),
            state=_str(raw.get("state")),
            mainContact=_str(raw.get("mainContact")),
            phoneNumber=_str(raw.get("phoneNumber")),
            filePath=_str(raw.get("filePath")),
            logo=_str(raw.get("logo")) or "🏥",
            description=_str(raw.get("description")),
        )

    def to_payload(self) -> Dict[str, Any]:
        body = asdict(self)
        # display-only fields stay local
        body.pop("logo")
        body.pop("description")
        return body


@dataclass(frozen=True)
class Option:
    """A ``{value, label}`` pair for select and multiselect widgets."""

    value: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        return {"value": self.value, "label": self.label}


def member_options(members: Iterable[TeamMember], *, include_team: bool = True) -> List[Option]:
    options = [Option(TEAM_ASSIGNEE, "team")] if include_team else []
    for m in members:
        if m.not_working or not m.username:
            continue
        label = f"{m.username} ({m.org})" if m.org else m.username
        options.append(Option(m.username, label))
    return options


def client_options(clients: Iterable[Client]) -> List[Option]:
    return [Option(c.facCode, f"{c.facCode} · {c.name}" if c.name else c.facCode) for c in clients]


def org_options(orgs: Iterable[Any]) -> List[Option]:
    out: List[Option] = []
    for o in orgs:
        # /api/org-options has returned both bare strings and {value,label}
        if isinstance(o, dict):
            value = _str(o.get("value") or o.get("label"))
            out.append(Option(value, _str(o.get("label")) or value))
        else:
            out.append(Option(_str(o), _str(o)))
    return [o for o in out if o.value]


def phase_options(phase_names: Iterable[str]) -> List[Option]:
    return [Option(p, p) for p in phase_names]
