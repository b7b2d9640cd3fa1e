"""SQLAlchemy models."""

from inventory_engine.models.location import Location, BinLocation, BinStatus
from inventory_engine.models.item import Item, TrackingType
from inventory_engine.models.documents import (
    Receipt,
    ReceiptLine,
    TransferOrder,
    TransferOrderLine,
    TransferOrderAllocation,
    TransferOrderStatus,
)
from inventory_engine.models.batch import (
    Batch,
    BatchDeduction,
    BatchSource,
    BatchStatus,
    DeductionType,
)
from inventory_engine.models.bin_allocation import BinAllocation
from inventory_engine.models.tasks import (
    PlacementTask,
    PlacementTaskStatus,
    TransferTask,
    TransferTaskStatus,
    TransferUrgency,
)
from inventory_engine.models.damage_report import DamageReport, DamageReportStatus, DamageSeverity
from inventory_engine.models.stock_count import (
    StockCount,
    StockCountItem,
    StockCountItemStatus,
    StockCountStatus,
    StockCountType,
)

from inventory_engine.db.immutability import register_immutability_listeners

register_immutability_listeners()

__all__ = [
    "Location",
    "BinLocation",
    "BinStatus",
    "Item",
    "TrackingType",
    "Receipt",
    "ReceiptLine",
    "TransferOrder",
    "TransferOrderLine",
    "TransferOrderAllocation",
    "TransferOrderStatus",
    "Batch",
    "BatchDeduction",
    "BatchSource",
    "BatchStatus",
    "DeductionType",
    "BinAllocation",
    "PlacementTask",
    "PlacementTaskStatus",
    "TransferTask",
    "TransferTaskStatus",
    "TransferUrgency",
    "DamageReport",
    "DamageReportStatus",
    "DamageSeverity",
    "StockCount",
    "StockCountItem",
    "StockCountItemStatus",
    "StockCountStatus",
    "StockCountType",
]
