"""
Pydantic models for sync outcomes.

Every model serializes with camelCase keys (`by_alias=True`), matching the
MLE payload and the response shapes the webhook documents.

Models:
  ErrorDetail       what went wrong on a single MLE API call
  SyncResult        outcome of one SyncClient operation
  SyncError         entry in a ProcessingResult's errors list
  ProcessingResult  final outcome of one event through the EventProcessor
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ProcessingStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"
    IGNORED = "ignored"


class SyncOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


class ErrorDetail(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    asset_id: Optional[str] = None
    error: Any = None          # response body when the API answered, else the transport message
    status: Optional[int] = None
    endpoint: Optional[str] = None


class SyncResult(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    success: bool
    target_id: Optional[str] = None
    status: Optional[Any] = None
    message: Optional[str] = None
    response_data: Any = None
    error: Optional[ErrorDetail] = None
    retryable: Optional[bool] = None


class SyncError(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    system: str = "target"
    error: Any = None
    retryable: bool = True


class ProcessingResult(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    status: ProcessingStatus
    asset_id: Optional[str] = None
    target: Optional[SyncResult] = None
    errors: List[SyncError] = []
    reason: Optional[str] = None
    operation: Optional[SyncOperation] = None

    @property
    def retryable(self) -> bool:
        """True when at least one recorded error may succeed on a later attempt."""
        return any(err.retryable for err in self.errors)
