"""
Tests for EvidenceLedger

Tests cover:
- One record per (job, status), enforced in code and by the UNIQUE constraint
- Empty submissions are rejected
- Input cleaning (blank photos, blank signature, seal numbers, notes)
- Evidence never changes the job status
"""

import pytest
from unittest.mock import patch

from app.config import settings
from app.models import Evidence, Job, JobStatus
from app.services.evidence_service import (
    EMPTY_EVIDENCE_MESSAGE,
    EvidenceLedger,
    clean_photos,
    clean_signature,
)
from app.utils.errors import NotFoundError, ValidationError


@pytest.fixture
def ledger(db):
    return EvidenceLedger(db)


def evidence_count(db, job_id):
    return db.query(Evidence).filter(Evidence.job_id == job_id).count()


class TestCleaningHelpers:
    def test_clean_photos(self):
        assert clean_photos(["a.jpg", "  ", None, 42, " b.jpg "]) == ["a.jpg", "b.jpg"]
        assert clean_photos(None) == []
        assert clean_photos("a.jpg") == []

    def test_clean_signature(self):
        assert clean_signature("   ") is None
        assert clean_signature(None) is None
        assert clean_signature(" data:image/png;base64,AAA ") == "data:image/png;base64,AAA"


class TestSubmitEvidence:
    def test_records_evidence(self, db, ledger, factory, tenant, driver):
        job = factory.job(tenant, status="collected", driver=driver)

        evidence = ledger.submit_evidence(
            job.id,
            "collected",
            photos=["photos/1.jpg", "", "photos/2.jpg"],
            signature="data:image/png;base64,SIG",
            seal_numbers=[" SEAL-001 ", "", None, "<i>SEAL-002</i>"],
            notes="  Left via loading bay  ",
            uploaded_by=driver.id,
        )

        assert evidence.status == "collected"
        assert evidence.photos == ["photos/1.jpg", "photos/2.jpg"]
        assert evidence.signature == "data:image/png;base64,SIG"
        assert evidence.seal_numbers == ["SEAL-001", "SEAL-002"]
        assert evidence.notes == "Left via loading bay"
        assert evidence.uploaded_by == driver.id

    def test_does_not_change_job_status(self, db, ledger, factory, tenant):
        job = factory.job(tenant, status="arrived")

        ledger.submit_evidence(job.id, JobStatus.COLLECTED, photos=["p.jpg"])

        db.refresh(job)
        assert job.status == "arrived"

    def test_second_submission_is_rejected(self, db, ledger, factory, tenant):
        job = factory.job(tenant, status="collected")
        ledger.submit_evidence(job.id, "collected", photos=["first.jpg"])

        with pytest.raises(ValidationError) as exc:
            ledger.submit_evidence(job.id, "collected", photos=["second.jpg"])

        assert '"collected"' in exc.value.message
        assert evidence_count(db, job.id) == 1
        assert ledger.list_evidence(job.id)[0].photos == ["first.jpg"]

    def test_other_status_is_allowed(self, db, ledger, factory, tenant):
        job = factory.job(tenant, status="warehouse")
        ledger.submit_evidence(job.id, "collected", photos=["a.jpg"])
        ledger.submit_evidence(job.id, "warehouse", signature="sig")

        assert [e.status for e in ledger.list_evidence(job.id)] == ["collected", "warehouse"]

    def test_empty_submission_is_rejected(self, db, ledger, factory, tenant):
        job = factory.job(tenant, status="collected")

        with pytest.raises(ValidationError) as exc:
            ledger.submit_evidence(job.id, "collected", photos=["", "  "], signature="  ")

        assert exc.value.message == EMPTY_EVIDENCE_MESSAGE
        assert evidence_count(db, job.id) == 0

    def test_one_photo_is_enough(self, ledger, factory, tenant):
        job = factory.job(tenant, status="collected")
        evidence = ledger.submit_evidence(job.id, "collected", photos=["only.jpg"], signature=None)
        assert evidence.signature is None

    def test_too_many_photos(self, ledger, factory, tenant):
        job = factory.job(tenant, status="collected")
        photos = [f"p{i}.jpg" for i in range(settings.evidence_max_photos + 1)]

        with pytest.raises(ValidationError) as exc:
            ledger.submit_evidence(job.id, "collected", photos=photos)
        assert "photos" in exc.value.fields

    def test_unknown_job(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.submit_evidence("nope", "collected", photos=["a.jpg"])

    def test_unknown_status(self, ledger, factory, tenant):
        job = factory.job(tenant)
        with pytest.raises(ValidationError):
            ledger.submit_evidence(job.id, "unpacked", photos=["a.jpg"])

    def test_unique_constraint_race_is_translated(self, db, ledger, factory, tenant):
        """A concurrent writer wins between the check and the insert"""
        job = factory.job(tenant, status="collected")
        db.add(Evidence(job_id=job.id, status="collected", photos=["winner.jpg"], seal_numbers=[]))
        db.commit()

        with patch.object(EvidenceLedger, "_exists", side_effect=[False, True]):
            with pytest.raises(ValidationError) as exc:
                ledger.submit_evidence(job.id, "collected", photos=["loser.jpg"])

        assert "cannot be modified" in exc.value.message
        assert evidence_count(db, job.id) == 1


class TestListEvidence:
    def test_empty(self, ledger, factory, tenant):
        job = factory.job(tenant)
        assert ledger.list_evidence(job.id) == []


class TestUploaderRemoval:
    def test_uploader_is_cleared_and_record_kept(self, db, ledger, factory, tenant, driver):
        job = factory.job(tenant, status="collected", driver=driver)
        evidence = ledger.submit_evidence(job.id, "collected", photos=["p.jpg"], uploaded_by=driver.id)

        db.delete(driver)
        db.commit()

        kept = db.query(Evidence).filter(Evidence.id == evidence.id).one()
        assert kept.uploaded_by is None
        assert kept.photos == ["p.jpg"]

    def test_job_removal_removes_its_evidence(self, db, ledger, factory, tenant):
        job = factory.job(tenant, status="collected")
        ledger.submit_evidence(job.id, "collected", photos=["p.jpg"])

        db.execute(Job.__table__.delete().where(Job.__table__.c.id == job.id))
        db.commit()

        assert evidence_count(db, job.id) == 0
