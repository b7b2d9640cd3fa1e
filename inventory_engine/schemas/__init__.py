"""Pydantic request and response schemas."""

from inventory_engine.schemas.common import DocumentRef
from inventory_engine.schemas.batch import (
    BatchDeductionResponse,
    BatchResponse,
    CreateBatchRequest,
    DeductRequest,
    DeductionResultResponse,
)
from inventory_engine.schemas.bin import AllocateRequest, BinAllocationResponse, DeallocateRequest
from inventory_engine.schemas.tasks import (
    AdvanceStepRequest,
    CreatePlacementTaskRequest,
    CreateTransferTaskRequest,
    PlaceItemRequest,
    PlacementTaskResponse,
    TransferTaskResponse,
)
from inventory_engine.schemas.damage_report import (
    CreateDamageReportRequest,
    DamageReportResponse,
    ReviewDamageReportRequest,
)
from inventory_engine.schemas.stock_count import (
    ApproveCountRequest,
    BulkRecordCountRequest,
    CountLineInput,
    CreateStockCountRequest,
    LineCountInput,
    RecordCountRequest,
    ReviewCountRequest,
    StockCountItemResponse,
    StockCountResponse,
    StockCountSummaryResponse,
)
