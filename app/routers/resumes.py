from fastapi import APIRouter, Depends, Request

from app.models.models import AuthUser
from app.models.request_schemas import CreateTailoredResumeRequest
from app.models.response import TailoredResumeResponse
from app.models.schemas import ResumeModel, SimplifiedJob, SimplifiedResume
from app.services.auth import require_user
from app.services.billing import get_subscription_plan
from app.services.graph import format_job_listing, tailor_resume_to_job
from app.services.resume_manager import ResumeManager
from app.utils.logging_config import PerformanceMonitor, get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)

RESUME_CONTENT_FIELDS = set(SimplifiedResume.model_fields)
JOB_CONTENT_FIELDS = set(SimplifiedJob.model_fields)


@router.get("/{resume_id}", response_model=ResumeModel)
@log_api_call("get_resume")
async def get_resume(resume_id: str, request: Request, user: AuthUser = Depends(require_user)):
    return await ResumeManager.get_resume(user.id, resume_id)


@router.post("/tailored", response_model=TailoredResumeResponse)
@log_api_call("create_tailored_resume")
async def create_tailored_resume(payload: CreateTailoredResumeRequest, request: Request,
                                 user: AuthUser = Depends(require_user)):
    """
    Build a resume for a job from a base resume.

    With AI and a job description: format the listing, save the job, tailor the
    base content to it and save the result. Otherwise the base content is
    copied unchanged.
    """
    request_id = getattr(request.state, 'request_id', 'unknown')
    base = await ResumeManager.get_resume(user.id, payload.base_resume_id)
    job = None

    if payload.use_ai and payload.job_description.strip():
        subscription = await get_subscription_plan(user.id)
        with PerformanceMonitor("tailored_resume_flow", logger, threshold_ms=30000):
            job = await format_job_listing(
                payload.job_description, payload.config, user.id, subscription.plan, persist=True
            )
            content = await tailor_resume_to_job(
                base.model_dump(include=RESUME_CONTENT_FIELDS),
                job.model_dump(mode="json", include=JOB_CONTENT_FIELDS),
                payload.config, user.id, subscription.plan,
            )
    else:
        logger.info("Copying base resume without AI tailoring", extra={"request_id": request_id})
        content = SimplifiedResume(**base.model_dump(include=RESUME_CONTENT_FIELDS))

    resume = await ResumeManager.create_tailored_resume(
        user.id,
        base,
        job.id if job else None,
        job.position_title if job else base.target_role,
        job.company if job else "",
        content,
    )
    return TailoredResumeResponse(resume=resume, job=job)
