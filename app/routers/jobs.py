from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request

from app.models.models import AuthUser
from app.models.response import DeleteJobResponse
from app.models.schemas import EmploymentType, JobListingFilters, JobListingPage, JobModel, WorkLocation
from app.services.auth import require_user
from app.services.job_manager import JobManager
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


@router.post("", response_model=JobModel)
@log_api_call("create_job")
async def create_job(request: Request, job: Dict[str, Any] = Body(...), user: AuthUser = Depends(require_user)):
    """Save a job listing for the current user"""
    return await JobManager.create_job(user.id, job)


@router.post("/empty", response_model=JobModel)
@log_api_call("create_empty_job")
async def create_empty_job(request: Request, user: AuthUser = Depends(require_user)):
    return await JobManager.create_empty_job(user.id)


@router.get("", response_model=JobListingPage)
@log_api_call("list_jobs")
async def list_jobs(
    request: Request,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=JobManager.MAX_PAGE_SIZE),
    work_location: Optional[WorkLocation] = Query(None),
    employment_type: Optional[EmploymentType] = Query(None),
    keywords: Optional[str] = Query(None, description="Comma-separated; every keyword must match"),
    user: AuthUser = Depends(require_user),
):
    """Active job listings, newest first"""
    filters = JobListingFilters(
        work_location=work_location,
        employment_type=employment_type,
        keywords=[k.strip() for k in keywords.split(",") if k.strip()] if keywords else [],
    )
    logger.info(
        f"Listing jobs page={page} size={page_size}",
        extra={"request_id": getattr(request.state, 'request_id', 'unknown')}
    )
    return await JobManager.get_job_listings(page, page_size, filters)


@router.get("/{job_id}", response_model=JobModel)
@log_api_call("get_job")
async def get_job(job_id: str, request: Request, user: AuthUser = Depends(require_user)):
    return await JobManager.get_job(job_id)


@router.delete("/{job_id}", response_model=DeleteJobResponse)
@log_api_call("delete_job")
async def delete_job(job_id: str, request: Request, user: AuthUser = Depends(require_user)):
    """Delete a job; jobs that tailored resumes still use are deactivated instead"""
    return await JobManager.delete_job(user.id, job_id)


@router.delete("/{job_id}/tailored", response_model=DeleteJobResponse)
@log_api_call("delete_tailored_job")
async def delete_tailored_job(job_id: str, request: Request, user: AuthUser = Depends(require_user)):
    return await JobManager.delete_tailored_job(user.id, job_id)
