"""Pydantic schemas for todo request/response validation."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date
from typing import Optional, Literal

Priority = Literal["low", "medium", "high"]


def _check_title(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("Title must not be empty")
    return value.strip() if value is not None else value


class TodoCreate(BaseModel):
    # id optionnel: le client peut générer le sien (uuid hex)
    id: Optional[str] = Field(default=None, max_length=64)
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    completed: bool = False
    priority: Priority = "medium"
    due_date: Optional[date] = None
    position: Optional[int] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value):
        return _check_title(value)


class TodoUpdate(BaseModel):
    """Schema for partial updates: only the fields sent are applied."""

    title: Optional[str] = None
    notes: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    position: Optional[int] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value):
        return _check_title(value)


class TodoBulkUpdate(BaseModel):
    completed: bool


class TodoResponse(BaseModel):
    id: str
    user_id: int
    title: str
    notes: Optional[str]
    completed: bool
    priority: Priority
    due_date: Optional[date]
    position: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
