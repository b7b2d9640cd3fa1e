"""Append-only enforcement for the batch deduction audit trail.

BatchDeduction rows are written once, inside the same transaction as the
batch quantities they explain, and are never reconciled independently. ORM
listeners reject any UPDATE or DELETE before SQL reaches the database.
"""

import logging

from sqlalchemy import event

from inventory_engine.core.exceptions import EngineError

logger = logging.getLogger(__name__)


class ImmutableRecordError(EngineError):
    code = "immutable_record"
    status_code = 409

    def __init__(self, entity_type: str, entity_id, operation: str):
        super().__init__(
            f"{entity_type} {entity_id} is append-only; {operation} rejected",
            entity=entity_type,
            entity_id=entity_id,
            operation=operation,
        )


def _reject_deduction_update(mapper, connection, target):
    logger.error(f"Blocked UPDATE of batch deduction {target.id}")
    raise ImmutableRecordError("BatchDeduction", target.id, "UPDATE")


def _reject_deduction_delete(mapper, connection, target):
    logger.error(f"Blocked DELETE of batch deduction {target.id}")
    raise ImmutableRecordError("BatchDeduction", target.id, "DELETE")


def register_immutability_listeners() -> None:
    """Install the listeners. Safe to call more than once."""
    from inventory_engine.models.batch import BatchDeduction

    if not event.contains(BatchDeduction, "before_update", _reject_deduction_update):
        event.listen(BatchDeduction, "before_update", _reject_deduction_update)
    if not event.contains(BatchDeduction, "before_delete", _reject_deduction_delete):
        event.listen(BatchDeduction, "before_delete", _reject_deduction_delete)
