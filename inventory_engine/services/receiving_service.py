"""Receiving Service - turns a completed receipt into stock.

One batch per receipt line plus one placement task per line, created in a
single transaction.
"""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from inventory_engine.core.exceptions import NotFoundError, StateTransitionError
from inventory_engine.db.transaction import atomic
from inventory_engine.models.batch import Batch, BatchSource
from inventory_engine.models.documents import Receipt
from inventory_engine.schemas.batch import CreateBatchRequest
from inventory_engine.services.batch_ledger_service import BatchLedgerService
from inventory_engine.services.placement_task_service import PlacementTaskService

logger = logging.getLogger(__name__)


class ReceivingService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = BatchLedgerService(db)
        self.placement = PlacementTaskService(db)

    def receive_receipt(self, receipt_id: int) -> Dict[str, Any]:
        """Create batches and placement tasks for every line of a receipt.

        Raises:
            NotFoundError: If the receipt does not exist.
            StateTransitionError: If the receipt was already received.
        """
        with atomic(self.db):
            receipt = self.db.get(Receipt, receipt_id)
            if not receipt:
                raise NotFoundError("Receipt", receipt_id)
            already = self.db.query(Batch.id).filter(Batch.receipt_id == receipt_id).first()
            if already:
                raise StateTransitionError(
                    "receipt", receipt_id, "received", "receive",
                    message=f"Receipt {receipt.receipt_number} has already been received",
                )

            batches = [
                self.ledger.apply_create_batch(
                    CreateBatchRequest(
                        item_id=line.item_id,
                        quantity=line.quantity,
                        source=BatchSource.RECEIPT,
                        receipt_id=receipt.id,
                        receipt_line_id=line.id,
                        bin_id=line.bin_id,
                    )
                )
                for line in receipt.lines
            ]
            tasks = self.placement.apply_create_from_receipt(receipt.id)

        logger.info(
            f"Received {receipt.receipt_number}: {len(batches)} batch(es), "
            f"{len(tasks)} placement task(s)"
        )
        return {
            "receipt_id": receipt.id,
            "receipt_number": receipt.receipt_number,
            "batch_ids": [b.id for b in batches],
            "placement_task_ids": [t.id for t in tasks],
        }
