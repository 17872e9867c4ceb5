"""Database models for School Intake"""

from school_intake.models.submission import (
    CompleteSubmission,
    Submission,
    SubmissionRecord,
    SubmissionStatus,
)

__all__ = [
    "SubmissionRecord",
    "Submission",
    "CompleteSubmission",
    "SubmissionStatus",
]
