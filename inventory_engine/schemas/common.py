"""Shared schema types."""

from typing import Optional

from pydantic import BaseModel, Field


class DocumentRef(BaseModel):
    """Reference to the document that caused a stock movement (sale, transfer order, count)."""

    ref_type: str = Field(..., max_length=50)
    ref_id: Optional[int] = None
    ref_number: Optional[str] = Field(default=None, max_length=100)
