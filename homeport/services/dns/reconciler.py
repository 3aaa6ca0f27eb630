"""DNS record reconciliation planning."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from homeport.models.dns import DNSRecord


class ChangeAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RecordChange:
    """One provider mutation."""

    action: ChangeAction
    name: str
    record_type: str
    content: str = ""
    record_id: Optional[str] = None


@dataclass
class RecordPlan:
    """Minimal set of changes to converge one name on the desired record."""

    name: str
    record_type: str
    content: str
    existing: List[DNSRecord] = field(default_factory=list)
    changes: List[RecordChange] = field(default_factory=list)
    ambiguous: bool = False

    @property
    def is_noop(self) -> bool:
        return not self.changes

    def count(self, action: ChangeAction) -> int:
        return sum(1 for change in self.changes if change.action == action)


class RecordReconciler:
    """Compare existing records with the desired one and plan changes.

    Only type and content are compared; proxied flag and TTL drift on an
    existing matching record is left alone.
    """

    def __init__(self, name: str, record_type: str, content: str):
        self.name = name
        self.record_type = record_type.upper()
        self.content = content

    def build_plan(self, existing: Sequence[DNSRecord]) -> RecordPlan:
        plan = RecordPlan(self.name, self.record_type, self.content, existing=list(existing))

        if not existing:
            plan.changes.append(self._create())
            return plan

        if len(existing) == 1:
            record = existing[0]
            if record.matches(self.record_type, self.content):
                return plan
            if record.type == self.record_type:
                plan.changes.append(RecordChange(
                    ChangeAction.UPDATE, self.name, self.record_type, self.content, record.id,
                ))
            else:
                # Type change needs replace, the provider cannot PATCH type
                plan.changes.append(self._delete(record))
                plan.changes.append(self._create())
            return plan

        # Several records at one name: keep a single exact match if present
        plan.ambiguous = True
        keeper = next((r for r in existing if r.matches(self.record_type, self.content)), None)
        for record in existing:
            if record is not keeper:
                plan.changes.append(self._delete(record))
        if keeper is None:
            plan.changes.append(self._create())
        return plan

    def _create(self) -> RecordChange:
        return RecordChange(ChangeAction.CREATE, self.name, self.record_type, self.content)

    def _delete(self, record: DNSRecord) -> RecordChange:
        return RecordChange(ChangeAction.DELETE, self.name, record.type, record.content, record.id)
