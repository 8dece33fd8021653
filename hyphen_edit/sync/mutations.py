# hyphen_edit/sync/mutations.py
"""
Mutation requests and their outcomes.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Union

from hyphen_edit.errors import NetworkError, SyncRejected
from hyphen_edit.model.store import Op

__all__ = ("MutationKind", "Mutation", "Accepted", "Rejected", "SyncResult", "result_from_response")


class MutationKind(str, Enum):
    FIELD = "field"
    TAG = "tag"
    PREFIX = "prefix"


@dataclass(frozen=True, slots=True)
class Mutation:
    """One change to one entity, as sent to the mutation interface."""

    entity_id: str
    kind: MutationKind
    op: Op = Op.SET
    field: Optional[str] = None
    category: Optional[str] = None
    value: Any = None
    new_value: Optional[str] = None

    @classmethod
    def set_field(cls, entity_id: str, field: str, value: Any) -> Mutation:
        return cls(entity_id, MutationKind.FIELD, Op.SET, field=field, value=value)

    @classmethod
    def tag(
        cls, entity_id: str, op: Op, category: str, value: str, new_value: Optional[str] = None
    ) -> Mutation:
        return cls(entity_id, MutationKind.TAG, Op(op), category=category, value=value, new_value=new_value)

    @classmethod
    def prefix(cls, entity_id: str, op: Op, value: str) -> Mutation:
        return cls(entity_id, MutationKind.PREFIX, Op(op), field="prefixes", value=value)

    def to_payload(self) -> Dict[str, Any]:
        """Request body of ``PATCH entity(id, field|tagOp)``."""
        if self.kind is MutationKind.FIELD:
            return {"field": self.field, "value": self.value}
        if self.kind is MutationKind.TAG:
            body: Dict[str, Any] = {"category": self.category, "op": self.op.value, "value": self.value}
            if self.new_value is not None:
                body["new_value"] = self.new_value
            return {"tag": body}
        return {"prefix": {"op": self.op.value, "value": self.value}}

    def describe(self) -> str:
        if self.kind is MutationKind.FIELD:
            return f"{self.entity_id}.{self.field} = {self.value!r}"
        if self.kind is MutationKind.TAG:
            return f"{self.entity_id} tag {self.op.value} {self.category}:{self.value!r}"
        return f"{self.entity_id} prefix {self.op.value} {self.value!r}"


@dataclass(frozen=True, slots=True)
class Accepted:
    normalized_value: Any = None
    last_modified_date: Any = None

    accepted: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: str
    retryable: bool = False
    cancelled: bool = False

    accepted: ClassVar[bool] = False

    def to_error(self) -> SyncRejected:
        if self.retryable:
            return NetworkError(self.reason)
        return SyncRejected(self.reason)


SyncResult = Union[Accepted, Rejected]


def result_from_response(data: Mapping[str, Any]) -> SyncResult:
    """Parse ``{accepted, normalizedValue?} | {rejected, reason}``."""
    if data.get("accepted"):
        return Accepted(
            normalized_value=data.get("normalizedValue", data.get("normalized_value")),
            last_modified_date=data.get("lastModifiedDate", data.get("last_modification_date")),
        )
    reason = data.get("reason") or "rejected by server"
    return Rejected(str(reason))
