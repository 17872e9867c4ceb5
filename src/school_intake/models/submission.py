"""Submission models: the SQLModel table plus raw and complete views"""

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import Column, Index, Text
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel

from school_intake.errors import ValidationError
from school_intake.utils.email_address import is_valid_email


class SubmissionStatus(str, enum.Enum):
    NEW = "new"
    EXPORTED = "exported"
    IN_PROGRESS = "in_progress"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ARCHIVED = "archived"

    @property
    def is_active(self) -> bool:
        return self is not SubmissionStatus.ARCHIVED

    @classmethod
    def active(cls) -> list["SubmissionStatus"]:
        """All statuses except the terminal archived one"""
        return [status for status in cls if status.is_active]

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]


class SubmissionRecord(SQLModel, table=True):
    """Persisted registration row. data and pdf_config hold JSON text."""

    __tablename__ = "submissions"
    __table_args__ = (Index("idx_submissions_status_deleted", "status", "deleted"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    form_key: str = Field(index=True, max_length=100)
    form_version: Optional[str] = Field(default=None, max_length=50)
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    status: SubmissionStatus = Field(
        default=SubmissionStatus.NEW,
        sa_column=Column(
            SAEnum(
                SubmissionStatus,
                name="submission_status",
                native_enum=True,
                values_callable=lambda enum: [e.value for e in enum],
            ),
            nullable=False,
            server_default=SubmissionStatus.NEW.value,
        ),
    )
    data: Optional[str] = Field(default=None, sa_column=Column(Text))
    pdf_config: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(
        default_factory=datetime.now, index=True
    )
    updated_at: Optional[datetime] = None
    deleted: bool = Field(default=False, index=True)
    deleted_at: Optional[datetime] = None


class Submission(BaseModel):
    """Submission as read from the store. name and email may be missing."""

    id: int
    form_key: str
    form_version: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.NEW
    data: Optional[dict[str, Any]] = None
    pdf_config: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted: bool = False
    deleted_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name or "Unknown"

    @property
    def display_email(self) -> str:
        return self.email or "-"

    @property
    def display_version(self) -> str:
        return self.form_version or "v1.0"

    def is_complete(self) -> bool:
        return (
            self.name is not None
            and self.name.strip() != ""
            and is_valid_email(self.email)
        )

    def to_complete(self) -> "CompleteSubmission":
        """
        Convert to a CompleteSubmission.

        Raises:
            ValidationError: If name is blank or email is missing/invalid
        """
        if not self.is_complete():
            raise ValidationError(
                f"Submission #{self.id} is incomplete (name or email missing or invalid)"
            )
        return CompleteSubmission(**self.model_dump(exclude={"pdf_config"}))


class CompleteSubmission(BaseModel):
    """Submission with a guaranteed non-blank name and a valid email"""

    id: int
    form_key: str
    form_version: Optional[str] = None
    name: str
    email: str
    status: SubmissionStatus = SubmissionStatus.NEW
    data: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted: bool = False
    deleted_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name cannot be empty")
        return value

    @field_validator("email")
    @classmethod
    def email_valid(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError(f"Invalid email: {value}")
        return value
