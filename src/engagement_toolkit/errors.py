"""
Error taxonomy shared by the stores, the reaction engine and the controller.

Every error carries a stable 'kind' string so the request layer can map it to
a transport status without importing the concrete classes. Nothing in the
toolkit retries on its own; 'ConflictError' is the only kind a caller is
expected to retry.
"""

from typing import Any


class EngagementError(Exception):
    kind = "error"


class ValidationError(EngagementError):
    """
    Input outside the declared constraints.

    'errors' lists one '{"field": ..., "message": ...}' entry per offending
    field, in the same shape the request layer returns to the client.
    """

    kind = "validation_error"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(EngagementError):
    kind = "not_found"


class ForbiddenError(EngagementError):
    kind = "forbidden"


class ExpiredError(EngagementError):
    kind = "expired"


class ConflictError(EngagementError):
    kind = "conflict"


class StorageFailureError(EngagementError):
    kind = "storage_failure"


class ConsistencyError(StorageFailureError):
    """
    A Ledger write failed after the Post Store had already been mutated.

    'reconciled' is True when every compensating action succeeded and both
    stores are back to their state before the call. When False, the Post Store
    is the source of truth and the Ledger needs manual reconciliation for
    'post_id' / 'user_id'.
    """

    kind = "consistency_fault"

    def __init__(self, message: str, post_id: str, user_id: str, reconciled: bool) -> None:
        super().__init__(message)
        self.post_id = post_id
        self.user_id = user_id
        self.reconciled = reconciled
