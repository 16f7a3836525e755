from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional

from ..config import settings
from ..models.user import UserRole
from ..schemas.common import success_response
from ..schemas.evidence import EvidenceResponse, EvidenceSubmit
from ..schemas.job import (
    JobCancelRequest,
    JobDetailResponse,
    JobResponse,
    JobStatusUpdate,
    JourneyFieldsUpdate,
)
from ..schemas.pagination import PaginationMeta
from ..services.access_scope import AccessScope, JobCriteria
from ..services.evidence_service import EvidenceLedger
from ..services.job_service import JobLifecycleManager, parse_job_status
from ..utils.dependencies import (
    CurrentUser,
    get_access_scope,
    get_evidence_ledger,
    get_job_service,
    require_admin,
    require_roles,
)
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])

require_field_role = require_roles(UserRole.ADMIN, UserRole.DRIVER)


@router.get("")
@router.get("/")
async def list_jobs(
    status_filter: Optional[str] = Query(None, alias="status"),
    client_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    history: bool = Query(False, description="Drivers: list warehouse-and-later jobs"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    scope: AccessScope = Depends(get_access_scope),
    service: JobLifecycleManager = Depends(get_job_service),
):
    """List jobs visible to the caller, newest first."""
    criteria = JobCriteria(
        status=parse_job_status(status_filter).value if status_filter else None,
        client_id=client_id,
        search=search.strip() if search and search.strip() else None,
        include_history=history,
    )
    jobs, total = service.list_jobs(scope, criteria, page, page_size)
    return success_response(
        [JobResponse.model_validate(j) for j in jobs],
        PaginationMeta.create(total, page, page_size),
    )


@router.get("/{job_id}")
@router.get("/{job_id}/")
async def get_job(
    job_id: str,
    scope: AccessScope = Depends(get_access_scope),
    service: JobLifecycleManager = Depends(get_job_service),
):
    job = service.get_job(job_id, scope)
    return success_response(JobDetailResponse.model_validate(job))


@router.patch("/{job_id}/status")
@router.patch("/{job_id}/status/")
@limiter.limit(get_rate_limit("job_status"))
async def update_job_status(
    request: Request,
    job_id: str,
    status_data: JobStatusUpdate,
    current_user: CurrentUser = Depends(require_field_role),
    scope: AccessScope = Depends(get_access_scope),
    service: JobLifecycleManager = Depends(get_job_service),
):
    """
    Move a job along its workflow.

    Drivers may only move their own jobs, and only drivers may complete a job.
    A matching booking milestone is updated in the same transaction.
    """
    new_status = parse_job_status(status_data.status)
    # Visibility check first so other drivers' jobs read as not found
    service.get_job(job_id, scope)
    job = service.update_job_status(
        job_id,
        new_status,
        changed_by=current_user.user_id,
        notes=status_data.notes,
        actor_role=current_user.role,
    )
    return success_response(JobDetailResponse.model_validate(job))


@router.patch("/{job_id}/evidence", status_code=status.HTTP_201_CREATED)
@router.patch("/{job_id}/evidence/", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("evidence"))
async def submit_evidence(
    request: Request,
    job_id: str,
    evidence_data: EvidenceSubmit,
    current_user: CurrentUser = Depends(require_field_role),
    scope: AccessScope = Depends(get_access_scope),
    service: JobLifecycleManager = Depends(get_job_service),
    ledger: EvidenceLedger = Depends(get_evidence_ledger),
):
    """Record write-once evidence for a job milestone."""
    service.get_job(job_id, scope)
    evidence = ledger.submit_evidence(
        job_id,
        parse_job_status(evidence_data.status),
        photos=evidence_data.photos,
        signature=evidence_data.signature,
        seal_numbers=evidence_data.seal_numbers,
        notes=evidence_data.notes,
        uploaded_by=current_user.user_id,
    )
    return success_response(EvidenceResponse.model_validate(evidence))


@router.get("/{job_id}/evidence")
@router.get("/{job_id}/evidence/")
async def list_evidence(
    job_id: str,
    scope: AccessScope = Depends(get_access_scope),
    service: JobLifecycleManager = Depends(get_job_service),
    ledger: EvidenceLedger = Depends(get_evidence_ledger),
):
    service.get_job(job_id, scope)
    return success_response([EvidenceResponse.model_validate(e) for e in ledger.list_evidence(job_id)])


@router.patch("/{job_id}/journey")
@router.patch("/{job_id}/journey/")
@limiter.limit(get_rate_limit("job_journey"))
async def update_journey_fields(
    request: Request,
    job_id: str,
    journey: JourneyFieldsUpdate,
    current_user: CurrentUser = Depends(require_field_role),
    scope: AccessScope = Depends(get_access_scope),
    service: JobLifecycleManager = Depends(get_job_service),
):
    service.get_job(job_id, scope)
    job = service.update_journey_fields(job_id, journey.model_dump())
    return success_response(JobDetailResponse.model_validate(job))


@router.post("/{job_id}/cancel")
@router.post("/{job_id}/cancel/")
@limiter.limit(get_rate_limit("job_cancel"))
async def cancel_job(
    request: Request,
    job_id: str,
    cancel_data: Optional[JobCancelRequest] = None,
    current_user: CurrentUser = Depends(require_admin),
    service: JobLifecycleManager = Depends(get_job_service),
):
    """Administrative cancellation. The booking is left as it is."""
    job = service.cancel_job(
        job_id,
        changed_by=current_user.user_id,
        notes=cancel_data.notes if cancel_data else None,
        actor_role=current_user.role,
    )
    return success_response(JobDetailResponse.model_validate(job))
