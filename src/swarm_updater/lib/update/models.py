"""
models.py
- Inbound update request and the per-service outcome reported back.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UpdateRequest(BaseModel):
    image: str = Field(min_length=1)
    tag: str = Field(min_length=1)
    service: Optional[str] = None


class OutcomeStatus(str, Enum):
    UPDATED = "updated"
    FAILED = "failed"
    DRY_RUN = "dry_run"


class UpdateOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    version: int
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")
    name: str
    image: str
    from_tag: str = Field(serialization_alias="fromTag")
    to_tag: str = Field(serialization_alias="toTag")
    status: OutcomeStatus
    error_kind: Optional[str] = Field(default=None, serialization_alias="errorKind")
    error: Optional[str] = None

    @property
    def ok(self):
        return self.status != OutcomeStatus.FAILED

    def to_response(self):
        return self.model_dump(mode="json", by_alias=True)
