"""Movement history: placements, completed transfers and damage write-offs in one feed."""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, aliased

from inventory_engine.models.damage_report import DamageReport, DamageReportStatus
from inventory_engine.models.location import BinLocation
from inventory_engine.models.tasks import (
    PlacementTask,
    PlacementTaskStatus,
    TransferTask,
    TransferTaskStatus,
)


class MovementHistoryService:
    def __init__(self, db: Session):
        self.db = db

    def history(self, item_id: Optional[int] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """Newest-first list of physical stock movements, optionally for one item."""
        events = self._placements(item_id) + self._transfers(item_id) + self._write_offs(item_id)
        events.sort(key=lambda e: e["timestamp"], reverse=True)
        return events[:limit]

    def _placements(self, item_id: Optional[int]) -> List[Dict[str, Any]]:
        query = (
            self.db.query(PlacementTask, BinLocation.bin_code)
            .outerjoin(BinLocation, BinLocation.id == PlacementTask.placed_bin_id)
            .filter(PlacementTask.status == PlacementTaskStatus.PLACED)
        )
        if item_id is not None:
            query = query.filter(PlacementTask.item_id == item_id)
        return [
            {
                "type": "placement",
                "item_id": task.item_id,
                "item_name": task.item_name,
                "from_bin": None,
                "to_bin": bin_code,
                "quantity": task.quantity,
                "user_name": task.placed_by_name,
                "timestamp": task.placed_at,
                "reference": task.source_reference,
            }
            for task, bin_code in query.all()
        ]

    def _transfers(self, item_id: Optional[int]) -> List[Dict[str, Any]]:
        source = aliased(BinLocation)
        destination = aliased(BinLocation)
        query = (
            self.db.query(TransferTask, source.bin_code, destination.bin_code)
            .outerjoin(source, source.id == TransferTask.source_bin_id)
            .outerjoin(destination, destination.id == TransferTask.destination_bin_id)
            .filter(TransferTask.status == TransferTaskStatus.COMPLETED)
        )
        if item_id is not None:
            query = query.filter(TransferTask.item_id == item_id)
        return [
            {
                "type": "transfer",
                "item_id": task.item_id,
                "item_name": task.item_name,
                "from_bin": from_code,
                "to_bin": to_code,
                "quantity": task.quantity,
                "user_name": task.completed_by_name or task.assigned_to_name,
                "timestamp": task.completed_at,
                "reference": task.reason,
            }
            for task, from_code, to_code in query.all()
        ]

    def _write_offs(self, item_id: Optional[int]) -> List[Dict[str, Any]]:
        query = (
            self.db.query(DamageReport, BinLocation.bin_code)
            .outerjoin(BinLocation, BinLocation.id == DamageReport.bin_id)
            .filter(DamageReport.status == DamageReportStatus.APPROVED)
        )
        if item_id is not None:
            query = query.filter(DamageReport.item_id == item_id)
        return [
            {
                "type": "damage",
                "item_id": report.item_id,
                "item_name": report.item_name,
                "from_bin": bin_code,
                "to_bin": None,
                "quantity": report.quantity,
                "user_name": report.reviewed_by_name,
                "timestamp": report.reviewed_at,
                "reference": report.damage_type,
            }
            for report, bin_code in query.all()
        ]
