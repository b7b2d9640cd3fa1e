"""Placement Task Service - putting received goods into bins.

``pending --place_item(bin)--> placed``. Placing a task and allocating its
quantity to the chosen bin happen in one transaction.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from inventory_engine.core.context import EngineContext
from inventory_engine.core.exceptions import NotFoundError, StateTransitionError, ValidationError
from inventory_engine.db.transaction import atomic
from inventory_engine.models.documents import Receipt, ReceiptLine
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation
from inventory_engine.models.tasks import PlacementTask, PlacementTaskStatus
from inventory_engine.schemas.tasks import CreatePlacementTaskRequest
from inventory_engine.services.bin_allocation_service import BinAllocationService
from inventory_engine.services.validation import normalize_serials, require_positive

logger = logging.getLogger(__name__)


def item_snapshot(item: Item) -> dict:
    """Identity and variant attributes copied onto tasks."""
    return {
        "item_id": item.id,
        "item_name": item.name,
        "sku": item.sku,
        "colour": item.colour,
        "size": item.size,
        "variant": item.variant,
        "category": item.category,
    }


class PlacementTaskService:
    """Creates placement tasks and resolves them into bin allocations."""

    def __init__(self, db: Session):
        self.db = db
        self.bins = BinAllocationService(db)

    def create(self, request: CreatePlacementTaskRequest) -> PlacementTask:
        quantity = require_positive(request.quantity)
        serials = normalize_serials(request.serial_numbers, quantity)
        with atomic(self.db):
            item = self.db.get(Item, request.item_id)
            if not item:
                raise NotFoundError("Item", request.item_id)
            if request.suggested_bin_id is not None and not self.db.get(
                BinLocation, request.suggested_bin_id
            ):
                raise NotFoundError("Bin", request.suggested_bin_id)

            task = PlacementTask(
                **item_snapshot(item),
                quantity=quantity,
                serial_numbers=serials or None,
                receipt_id=request.receipt_id,
                source_reference=request.source_reference,
                suggested_bin_id=request.suggested_bin_id,
                suggested_bin_reason=request.suggested_bin_reason,
                status=PlacementTaskStatus.PENDING,
            )
            self.db.add(task)
            self.db.flush()
        logger.info(f"Created placement task {task.id} for item {item.id}")
        return task

    def create_from_receipt(self, receipt_id: int) -> List[PlacementTask]:
        """Fan out one pending placement task per receipt line."""
        with atomic(self.db):
            tasks = self.apply_create_from_receipt(receipt_id)
        return tasks

    def apply_create_from_receipt(self, receipt_id: int) -> List[PlacementTask]:
        receipt = self.db.get(Receipt, receipt_id)
        if not receipt:
            raise NotFoundError("Receipt", receipt_id)
        if not receipt.lines:
            raise ValidationError(f"Receipt {receipt.receipt_number} has no lines", receipt_id=receipt_id)

        existing = (
            self.db.query(PlacementTask.id)
            .filter(PlacementTask.receipt_id == receipt_id)
            .first()
        )
        if existing:
            raise StateTransitionError(
                "receipt", receipt_id, "received", "create placement tasks for",
                message=f"Placement tasks already exist for receipt {receipt.receipt_number}",
            )

        tasks = []
        for line in receipt.lines:
            suggested_bin_id, reason = self._suggest_bin(line)
            task = PlacementTask(
                **item_snapshot(line.item),
                quantity=line.quantity,
                serial_numbers=list(line.serial_numbers) if line.serial_numbers else None,
                receipt_id=receipt.id,
                source_reference=receipt.receipt_number,
                suggested_bin_id=suggested_bin_id,
                suggested_bin_reason=reason,
                status=PlacementTaskStatus.PENDING,
            )
            self.db.add(task)
            tasks.append(task)
        self.db.flush()

        logger.info(
            f"Created {len(tasks)} placement task(s) from receipt {receipt.receipt_number}"
        )
        return tasks

    def place_item(self, task_id: int, bin_id: int, ctx: EngineContext) -> PlacementTask:
        """Mark a pending task placed and allocate its quantity to ``bin_id``.

        Raises:
            StateTransitionError: If the task is already placed.
            NotFoundError: If the task or bin does not exist.
        """
        with atomic(self.db):
            task = self._get_task(task_id, lock=True)
            if task.status != PlacementTaskStatus.PENDING:
                raise StateTransitionError("placement task", task.id, task.status.value, "place")

            self.bins.apply_allocate(task.item_id, bin_id, task.quantity, task.serial_numbers)

            task.status = PlacementTaskStatus.PLACED
            task.placed_bin_id = bin_id
            task.placed_by = ctx.actor_id
            task.placed_by_name = ctx.actor_name
            task.placed_at = datetime.now(timezone.utc)
            self.db.flush()

        logger.info(f"Placement task {task.id} placed in bin {bin_id} by {ctx.actor_name}")
        return task

    def get_task(self, task_id: int) -> PlacementTask:
        return self._get_task(task_id)

    def list_tasks(
        self,
        status: Optional[PlacementTaskStatus] = None,
        receipt_id: Optional[int] = None,
    ) -> List[PlacementTask]:
        query = self.db.query(PlacementTask)
        if status:
            query = query.filter(PlacementTask.status == status)
        if receipt_id:
            query = query.filter(PlacementTask.receipt_id == receipt_id)
        return query.order_by(PlacementTask.created_at.asc(), PlacementTask.id.asc()).all()

    def _suggest_bin(self, line: ReceiptLine):
        if line.bin_id:
            return line.bin_id, "Bin selected at receiving"
        allocation = self.bins.largest_allocation(line.item_id)
        if allocation:
            return allocation.bin_id, f"Bin already holds {allocation.quantity} of this item"
        return None, None

    def _get_task(self, task_id: int, lock: bool = False) -> PlacementTask:
        query = self.db.query(PlacementTask).filter(PlacementTask.id == task_id)
        if lock:
            query = query.with_for_update()
        task = query.first()
        if not task:
            raise NotFoundError("Placement task", task_id)
        return task
