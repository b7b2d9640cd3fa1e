"""Stock integrity check: does an item's book stock agree with its batches and bins?

Stock received but not yet placed sits in pending placement tasks, so the
bin total is compared against ``current_stock`` minus that quantity.
"""

import logging
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from inventory_engine.core.exceptions import NotFoundError
from inventory_engine.models.batch import Batch, BatchStatus
from inventory_engine.models.bin_allocation import BinAllocation
from inventory_engine.models.item import Item
from inventory_engine.models.tasks import PlacementTask, PlacementTaskStatus

logger = logging.getLogger(__name__)


class StockIntegrityService:
    def __init__(self, db: Session):
        self.db = db

    def check_item(self, item_id: int) -> Dict[str, Any]:
        item = self.db.get(Item, item_id)
        if not item:
            raise NotFoundError("Item", item_id)

        batch_total = self._sum(
            func.sum(Batch.remaining_quantity),
            Batch.item_id == item_id,
            Batch.status == BatchStatus.ACTIVE,
        )
        bin_total = self._sum(func.sum(BinAllocation.quantity), BinAllocation.item_id == item_id)
        unplaced = self._sum(
            func.sum(PlacementTask.quantity),
            PlacementTask.item_id == item_id,
            PlacementTask.status == PlacementTaskStatus.PENDING,
        )
        current_stock = item.current_stock or Decimal("0")

        result = {
            "item_id": item.id,
            "current_stock": current_stock,
            "batch_total": batch_total,
            "bin_total": bin_total,
            "pending_placement": unplaced,
            "ledger_consistent": current_stock == batch_total,
            "bins_consistent": current_stock == bin_total + unplaced,
        }
        if not (result["ledger_consistent"] and result["bins_consistent"]):
            logger.warning(f"Stock mismatch for item {item.id}: {result}")
        return result

    def _sum(self, expression, *criteria) -> Decimal:
        value = self.db.query(expression).filter(*criteria).scalar()
        if value is None:
            return Decimal("0")
        return Decimal(str(value)).quantize(Decimal("0.01"))
