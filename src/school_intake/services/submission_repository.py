"""Submission repository - inserts and reads registration rows"""

import json
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from school_intake.errors import StorageError
from school_intake.models.submission import (
    Submission,
    SubmissionRecord,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)


def encode_json(value: Optional[Mapping[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def decode_json(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Decode stored JSON text. Malformed or non-object content yields None."""
    if text is None or text == "":
        return None
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        logger.warning("Stored JSON could not be decoded, returning None")
        return None
    return value if isinstance(value, dict) else None


class SubmissionRepository:
    """Repository for submission rows"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def insert(self, fields: Mapping[str, Any]) -> int:
        """
        Insert a new submission.

        Args:
            fields: form_key, form_version, name, email, data, optional
                status and pdf_config. data/pdf_config may be mappings or
                already-encoded JSON strings.

        Returns:
            The id assigned by the database

        Raises:
            StorageError: On constraint violation or connection failure
        """
        data = fields.get("data")
        pdf_config = fields.get("pdf_config")

        record = SubmissionRecord(
            form_key=fields["form_key"],
            form_version=fields.get("form_version"),
            name=fields.get("name"),
            email=fields.get("email"),
            status=SubmissionStatus(fields.get("status") or SubmissionStatus.NEW),
            data=data if isinstance(data, str) else encode_json(data),
            pdf_config=(
                pdf_config if isinstance(pdf_config, str) else encode_json(pdf_config)
            ),
        )

        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error inserting submission for form {record.form_key}: {e}")
            raise StorageError(f"Failed to save submission: {e}") from e

        logger.info(f"Created submission {record.id} for form {record.form_key}")
        return record.id

    def find_by_id(self, submission_id: int) -> Optional[Submission]:
        """Get a submission by id, or None if it does not exist"""
        record = self.db.get(SubmissionRecord, submission_id)
        if record is None:
            return None
        return self._to_submission(record)

    def find_all_form_keys(self) -> list[str]:
        stmt = select(SubmissionRecord.form_key).distinct().order_by(
            SubmissionRecord.form_key
        )
        return list(self.db.exec(stmt).all())

    def update_status(self, submission_id: int, status: SubmissionStatus) -> bool:
        """Set a new status on a non-deleted submission"""
        record = self.db.get(SubmissionRecord, submission_id)
        if record is None or record.deleted:
            return False

        record.status = SubmissionStatus(status)
        record.updated_at = datetime.now()
        self._commit(record)
        return True

    def soft_delete(self, submission_id: int) -> bool:
        record = self.db.get(SubmissionRecord, submission_id)
        if record is None or record.deleted:
            return False

        now = datetime.now()
        record.deleted = True
        record.deleted_at = now
        record.updated_at = now
        self._commit(record)
        return True

    def restore(self, submission_id: int) -> bool:
        record = self.db.get(SubmissionRecord, submission_id)
        if record is None or not record.deleted:
            return False

        record.deleted = False
        record.deleted_at = None
        record.updated_at = datetime.now()
        self._commit(record)
        return True

    def _commit(self, record: SubmissionRecord) -> None:
        try:
            self.db.add(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating submission {record.id}: {e}")
            raise StorageError(f"Failed to update submission: {e}") from e

    @staticmethod
    def _to_submission(record: SubmissionRecord) -> Submission:
        return Submission(
            id=record.id,
            form_key=record.form_key,
            form_version=record.form_version,
            name=record.name,
            email=record.email,
            status=record.status,
            data=decode_json(record.data),
            pdf_config=decode_json(record.pdf_config),
            created_at=record.created_at,
            updated_at=record.updated_at,
            deleted=record.deleted,
            deleted_at=record.deleted_at,
        )
