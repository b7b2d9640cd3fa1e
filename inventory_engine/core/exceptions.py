"""Engine error taxonomy.

Every error raised by a service carries a machine-readable ``code``, the
HTTP status the API layer maps it to, and a small ``context`` dict naming
the item, bin or document involved. Raw persistence errors never leave the
service layer; they are translated into ``ConcurrencyConflict`` or re-raised
after rollback.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional


class EngineError(Exception):
    """Base class for all inventory engine errors."""

    code = "engine_error"
    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "error": self.code}
        for key, value in self.context.items():
            payload[key] = str(value) if isinstance(value, Decimal) else value
        return payload


class ValidationError(EngineError):
    """Rejected before any mutation: bad quantity, missing field, bad serials."""

    code = "validation_error"
    status_code = 422


class NotFoundError(EngineError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)


class InsufficientStockError(EngineError):
    """Raised when the batch ledger cannot satisfy a deduction."""

    code = "insufficient_stock"
    status_code = 409

    def __init__(self, item_id: int, requested: Decimal, available: Decimal, item_name: str = ""):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        self.item_name = item_name
        super().__init__(
            f"Insufficient stock for {self._where()}: need {requested}, have {available}",
            item_id=item_id,
            requested=requested,
            available=available,
        )

    def _where(self) -> str:
        return f"'{self.item_name}'" if self.item_name else f"item {self.item_id}"


class InsufficientStockAtBin(InsufficientStockError):
    """Raised when a deallocation exceeds what is on hand at a bin."""

    code = "insufficient_stock_at_bin"

    def __init__(self, item_id: int, bin_id: int, requested: Decimal, available: Decimal):
        self.bin_id = bin_id
        super().__init__(item_id, requested, available)
        self.context["bin_id"] = bin_id

    def _where(self) -> str:
        return f"item {self.item_id} at bin {self.bin_id}"


class StateTransitionError(EngineError):
    """Raised when an action is not allowed from the entity's current status."""

    code = "invalid_state_transition"
    status_code = 409

    def __init__(self, entity: str, entity_id: Any, current_status: str, action: str,
                 message: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            message or f"Cannot {action} {entity} {entity_id} in status '{current_status}'",
            entity=entity,
            entity_id=entity_id,
            current_status=current_status,
            action=action,
        )


class IncompleteCountError(StateTransitionError):
    """Raised when a stock count is submitted with uncounted lines."""

    code = "incomplete_count"

    def __init__(self, count_id: int, uncounted_line_ids: Iterable[int]):
        self.uncounted_line_ids = list(uncounted_line_ids)
        super().__init__(
            "stock count",
            count_id,
            "in_progress",
            "submit",
            message=(
                f"Stock count {count_id} has {len(self.uncounted_line_ids)} uncounted line(s)"
            ),
        )
        self.context["uncounted_line_ids"] = self.uncounted_line_ids


class ConcurrencyConflict(EngineError):
    """Lock contention or version mismatch. The caller should retry the whole transaction."""

    code = "concurrency_conflict"
    status_code = 409
