"""Transfer Task Service - multi-step bin-to-bin moves.

``pending --begin--> in_progress --advance_step--> in_progress --complete--> completed``

``current_step`` belongs to the handheld UI; the engine only moves stock
when a task is completed, deallocating from the source bin and allocating
to the destination bin in one transaction.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from inventory_engine.core.context import EngineContext
from inventory_engine.core.exceptions import NotFoundError, StateTransitionError, ValidationError
from inventory_engine.db.transaction import atomic
from inventory_engine.models.documents import TransferOrder
from inventory_engine.models.item import Item
from inventory_engine.models.location import BinLocation
from inventory_engine.models.tasks import TransferTask, TransferTaskStatus, TransferUrgency
from inventory_engine.schemas.tasks import CreateTransferTaskRequest
from inventory_engine.services.bin_allocation_service import BinAllocationService
from inventory_engine.services.placement_task_service import item_snapshot
from inventory_engine.services.validation import normalize_serials, require_positive

logger = logging.getLogger(__name__)


class TransferTaskService:
    """Creates transfer tasks and executes the stock move on completion."""

    def __init__(self, db: Session):
        self.db = db
        self.bins = BinAllocationService(db)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create(self, request: CreateTransferTaskRequest) -> TransferTask:
        quantity = require_positive(request.quantity)
        serials = normalize_serials(request.serial_numbers, quantity)
        with atomic(self.db):
            item = self.db.get(Item, request.item_id)
            if not item:
                raise NotFoundError("Item", request.item_id)
            for bin_id in (request.source_bin_id, request.destination_bin_id):
                if bin_id is not None and not self.db.get(BinLocation, bin_id):
                    raise NotFoundError("Bin", bin_id)

            task = TransferTask(
                **item_snapshot(item),
                quantity=quantity,
                serial_numbers=serials or None,
                source_bin_id=request.source_bin_id,
                destination_bin_id=request.destination_bin_id,
                status=TransferTaskStatus.PENDING,
                urgency=request.urgency,
                reason=request.reason,
                assigned_to=request.assigned_to,
                assigned_to_name=request.assigned_to_name,
                current_step=0,
            )
            self.db.add(task)
            self.db.flush()
        logger.info(f"Created transfer task {task.id} for item {item.id}")
        return task

    def create_from_transfer_order(self, order_id: int) -> List[TransferTask]:
        """Fan out one task per transfer order line.

        The source bin comes from the order's allocation for the item, else
        from the bin in the source location holding most of it. Tasks start
        ``in_progress``: the order itself is the go-ahead.
        """
        with atomic(self.db):
            order = self.db.get(TransferOrder, order_id)
            if not order:
                raise NotFoundError("Transfer order", order_id)
            if not order.lines:
                raise ValidationError(
                    f"Transfer order {order.transfer_number} has no lines", transfer_order_id=order_id
                )
            existing = (
                self.db.query(TransferTask.id)
                .filter(TransferTask.transfer_order_id == order_id)
                .first()
            )
            if existing:
                raise StateTransitionError(
                    "transfer order", order_id, order.status.value, "create tasks for",
                    message=f"Tasks already exist for transfer order {order.transfer_number}",
                )

            allocations = {}
            for allocation in order.allocations:
                allocations.setdefault(allocation.item_id, allocation)

            now = datetime.now(timezone.utc)
            tasks = []
            for line in order.lines:
                planned = allocations.get(line.item_id)
                source_bin_id = planned.source_bin_id if planned else None
                destination_bin_id = planned.destination_bin_id if planned else None
                if source_bin_id is None:
                    held = self.bins.largest_allocation(line.item_id, order.source_location_id)
                    source_bin_id = held.bin_id if held else None

                task = TransferTask(
                    **item_snapshot(line.item),
                    transfer_order_id=order.id,
                    quantity=line.quantity,
                    serial_numbers=list(line.serial_numbers) if line.serial_numbers else None,
                    source_bin_id=source_bin_id,
                    destination_bin_id=destination_bin_id,
                    status=TransferTaskStatus.IN_PROGRESS,
                    urgency=TransferUrgency.NORMAL,
                    reason=order.reason or f"Transfer order {order.transfer_number}",
                    current_step=0,
                    started_at=now,
                )
                self.db.add(task)
                tasks.append(task)
            self.db.flush()

        logger.info(
            f"Created {len(tasks)} transfer task(s) from transfer order {order.transfer_number}"
        )
        return tasks

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def begin(self, task_id: int, ctx: EngineContext) -> TransferTask:
        with atomic(self.db):
            task = self._get_task(task_id, lock=True)
            if task.status != TransferTaskStatus.PENDING:
                raise StateTransitionError("transfer task", task.id, task.status.value, "begin")
            task.status = TransferTaskStatus.IN_PROGRESS
            task.started_at = datetime.now(timezone.utc)
            if task.assigned_to is None:
                task.assigned_to = ctx.actor_id
                task.assigned_to_name = ctx.actor_name
        logger.info(f"Transfer task {task.id} started")
        return task

    def advance_step(self, task_id: int, step: Optional[int] = None) -> TransferTask:
        """Record UI progress. ``step`` sets the counter; omitted, it increments."""
        if step is not None and step < 0:
            raise ValidationError("step cannot be negative", field="step")
        with atomic(self.db):
            task = self._get_task(task_id, lock=True)
            if task.status != TransferTaskStatus.IN_PROGRESS:
                raise StateTransitionError("transfer task", task.id, task.status.value, "advance")
            task.current_step = step if step is not None else task.current_step + 1
        return task

    def complete(self, task_id: int, ctx: EngineContext) -> TransferTask:
        """Move the stock and close the task.

        Raises:
            StateTransitionError: If the task is not in progress.
            ValidationError: If either bin is missing or they are the same.
            InsufficientStockAtBin: If the source bin no longer holds the
                quantity. Nothing is written.
        """
        with atomic(self.db):
            task = self._get_task(task_id, lock=True)
            if task.status != TransferTaskStatus.IN_PROGRESS:
                raise StateTransitionError("transfer task", task.id, task.status.value, "complete")
            if task.source_bin_id is None or task.destination_bin_id is None:
                raise ValidationError(
                    f"Transfer task {task.id} needs both a source and a destination bin",
                    task_id=task.id,
                )
            if task.source_bin_id == task.destination_bin_id:
                raise ValidationError(
                    f"Transfer task {task.id} has the same source and destination bin",
                    task_id=task.id,
                )

            self.bins.apply_deallocate(
                task.item_id, task.source_bin_id, task.quantity, task.serial_numbers
            )
            self.bins.apply_allocate(
                task.item_id, task.destination_bin_id, task.quantity, task.serial_numbers
            )

            task.status = TransferTaskStatus.COMPLETED
            task.completed_at = datetime.now(timezone.utc)
            task.completed_by = ctx.actor_id
            task.completed_by_name = ctx.actor_name
            self.db.flush()

        logger.info(
            f"Transfer task {task.id} completed: {task.quantity} of item {task.item_id} "
            f"from bin {task.source_bin_id} to bin {task.destination_bin_id}"
        )
        return task

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_task(self, task_id: int) -> TransferTask:
        return self._get_task(task_id)

    def list_tasks(
        self,
        status: Optional[TransferTaskStatus] = None,
        assigned_to: Optional[int] = None,
        transfer_order_id: Optional[int] = None,
    ) -> List[TransferTask]:
        query = self.db.query(TransferTask)
        if status:
            query = query.filter(TransferTask.status == status)
        if assigned_to is not None:
            query = query.filter(TransferTask.assigned_to == assigned_to)
        if transfer_order_id is not None:
            query = query.filter(TransferTask.transfer_order_id == transfer_order_id)
        # Urgent first, then oldest
        return query.order_by(
            (TransferTask.urgency == TransferUrgency.URGENT).desc(),
            TransferTask.created_at.asc(),
            TransferTask.id.asc(),
        ).all()

    def _get_task(self, task_id: int, lock: bool = False) -> TransferTask:
        query = self.db.query(TransferTask).filter(TransferTask.id == task_id)
        if lock:
            query = query.with_for_update()
        task = query.first()
        if not task:
            raise NotFoundError("Transfer task", task_id)
        return task
