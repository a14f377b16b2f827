"""
Row visibility per role.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from complaint_hub.core.security import Actor
from complaint_hub.models.auth import AppRole


@dataclass(frozen=True)
class ViewerScope:
    """
    Rows an actor may see.

    Administrators see every row, workers the rows assigned to them, and
    residents the rows they raised. ``column`` is ``None`` for an unscoped
    view; ``empty`` marks a worker identity with no worker record.
    """

    column: Optional[str] = None
    value: Optional[UUID] = None
    empty: bool = False

    @classmethod
    def for_actor(cls, actor: Actor) -> "ViewerScope":
        if actor.role == AppRole.ADMINISTRATOR:
            return cls()
        if actor.role == AppRole.WORKER:
            if actor.worker_id is None:
                return cls(empty=True)
            return cls("assigned_worker_id", actor.worker_id)
        return cls("user_id", actor.user_id)

    def filters(self) -> Dict[str, Any]:
        return {self.column: self.value} if self.column else {}

    def merge(self, requested: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Combine request filters with the scope.

        Returns ``None`` when the combination cannot match anything.
        """
        if self.empty:
            return None
        merged = {k: v for k, v in requested.items() if v is not None and v != "all"}
        if self.column:
            asked = merged.get(self.column)
            if asked is not None and str(asked) != str(self.value):
                return None
            merged[self.column] = self.value
        return merged

    def matches(self, row: Optional[Mapping[str, Any]]) -> bool:
        """Whether a row image (as published on the change feed) is visible."""
        if row is None or self.empty:
            return False
        if self.column is None:
            return True
        return str(row.get(self.column)) == str(self.value)
