from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


class ErrorType(str, Enum):
    VALIDATION = "VALIDATION"
    DATABASE = "DATABASE"
    LOOKUP = "LOOKUP"
    FILE_FORMAT = "FILE_FORMAT"
    UNEXPECTED_ROW_ERROR = "UNEXPECTED_ROW_ERROR"
    TASK_EXCEPTION = "TASK_EXCEPTION"
    UNKNOWN = "UNKNOWN"


class ErrorDetailModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True, from_attributes=True)

    row_number: Optional[int] = None
    field_name: Optional[str] = None
    error_code: Optional[str] = None
    error_message: str
    error_type: ErrorType = ErrorType.UNKNOWN
    offending_value: Optional[str] = None


class StockRowModel(BaseModel):
    """A row projected onto the recognized import columns; anything else is dropped."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    sku: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1)
    qty: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)

    @field_validator('*', mode='before')
    @classmethod
    def coerce_to_str(cls, v):
        # rows built in memory may carry numbers
        if v is not None and not isinstance(v, str):
            return str(v)
        return v


# --- API Response Schemas ---

class ImportSessionResponseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    entity_code: str
    behavior: str
    original_filename: Optional[str] = None
    status: str
    details: Optional[str] = None
    record_count: Optional[int] = None
    error_count: Optional[int] = None
    items_created: Optional[int] = None
    items_updated: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ImportSessionListResponseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: List[ImportSessionResponseSchema]
    total: int


class ImportResponseModel(BaseModel):
    message: str
    session_id: str
    entity_code: str
    behavior: str
    status: str
    task_id: Optional[str] = None
