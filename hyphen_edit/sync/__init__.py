"""hyphen_edit.sync: backend client and the per-entity sync coordinator."""

from hyphen_edit.sync.client import Backend, HttpBackend
from hyphen_edit.sync.coordinator import SyncCoordinator, Ticket
from hyphen_edit.sync.mutations import Accepted, Mutation, MutationKind, Rejected, SyncResult

__all__ = [
    "Backend",
    "HttpBackend",
    "SyncCoordinator",
    "Ticket",
    "Accepted",
    "Mutation",
    "MutationKind",
    "Rejected",
    "SyncResult",
]
