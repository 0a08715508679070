"""Time entry schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class TimeEntryCreate(BaseModel):
    project_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    is_billable: bool = True
    user_id: Optional[str] = Field(
        None, description="Owner of the entry; defaults to the caller"
    )

    @model_validator(mode="after")
    def check_interval(self) -> "TimeEntryCreate":
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TimeEntryUpdate(BaseModel):
    """Partial update. Ownership changes go through the reassign endpoint."""
    project_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    is_billable: Optional[bool] = None


class ReassignRequest(BaseModel):
    user_id: str


class TimeEntryResponse(BaseModel):
    id: str
    user_id: str
    project_id: str
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    is_billable: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
