"""
Evidence Ledger

Write-once proof-of-work records: at most one per (job, status). There is no
update or delete; a driver who made a mistake records a note on a later
milestone instead.
"""

from typing import Any, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models.evidence import Evidence
from ..models.job import Job, JobStatus
from ..utils.errors import NotFoundError, ValidationError
from ..utils.logging_config import get_logger
from ..utils.sanitization import sanitize_string, sanitize_string_array

logger = get_logger(__name__)


def duplicate_evidence_message(status: str) -> str:
    return (
        f'Evidence has already been submitted for status "{status}" and cannot be modified. '
        f'Evidence is immutable for audit purposes.'
    )


EMPTY_EVIDENCE_MESSAGE = (
    "Evidence must include at least one photo or a customer signature. "
    "Cannot create empty evidence records."
)


def clean_photos(photos: Optional[Iterable[Any]]) -> List[str]:
    """Photos are opaque references; only blanks and non-strings are dropped."""
    if photos is None or isinstance(photos, (str, bytes)):
        return []
    return [p.strip() for p in photos if isinstance(p, str) and p.strip()]


def clean_signature(signature: Optional[Any]) -> Optional[str]:
    if not isinstance(signature, str) or not signature.strip():
        return None
    return signature.strip()


class EvidenceLedger:
    def __init__(self, db: Session):
        self.db = db

    def submit_evidence(
        self,
        job_id: str,
        status,
        photos: Optional[Iterable[Any]] = None,
        signature: Optional[str] = None,
        seal_numbers: Optional[Iterable[Any]] = None,
        notes: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> Evidence:
        """
        Record evidence for a job milestone.

        Does not change the job status; the driver app submits evidence and
        then moves the job on with a separate call.

        Raises:
            NotFoundError: job does not exist
            ValidationError: unknown status, duplicate, or empty submission
        """
        try:
            evidence_status = JobStatus(status)
        except ValueError:
            raise ValidationError(f'Invalid job status "{status}"', fields={"status": "unknown status"})

        job = self.db.query(Job).filter(Job.id == job_id).first()
        if not job:
            raise NotFoundError("Job", job_id)

        if self._exists(job_id, evidence_status.value):
            raise ValidationError(duplicate_evidence_message(evidence_status.value))

        cleaned_photos = clean_photos(photos)
        cleaned_signature = clean_signature(signature)
        cleaned_seals = sanitize_string_array(seal_numbers)
        cleaned_notes = sanitize_string(notes) or None

        if not cleaned_photos and not cleaned_signature:
            raise ValidationError(EMPTY_EVIDENCE_MESSAGE)

        if len(cleaned_photos) > settings.evidence_max_photos:
            raise ValidationError(
                f"A maximum of {settings.evidence_max_photos} photos can be submitted at once",
                fields={"photos": "too many photos"}
            )

        evidence = Evidence(
            job_id=job_id,
            status=evidence_status.value,
            photos=cleaned_photos,
            signature=cleaned_signature,
            seal_numbers=cleaned_seals,
            notes=cleaned_notes,
            uploaded_by=uploaded_by,
        )
        self.db.add(evidence)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # A concurrent submission for the same milestone committed first
            if self._exists(job_id, evidence_status.value):
                raise ValidationError(duplicate_evidence_message(evidence_status.value))
            raise

        self.db.refresh(evidence)
        logger.evidence_submitted(job_id, evidence_status.value, len(cleaned_photos), cleaned_signature is not None)
        return evidence

    def list_evidence(self, job_id: str) -> List[Evidence]:
        """All evidence for a job, oldest first."""
        return (
            self.db.query(Evidence)
            .filter(Evidence.job_id == job_id)
            .order_by(Evidence.created_at.asc(), Evidence.id.asc())
            .all()
        )

    def _exists(self, job_id: str, status: str) -> bool:
        return self.db.query(Evidence.id).filter(
            Evidence.job_id == job_id,
            Evidence.status == status
        ).first() is not None
