"""
Authenticated AI actions: job formatting, resume tailoring and model listing
"""
from fastapi import APIRouter, Depends, Request

from app.models.ai_settings import PROVIDERS, get_default_model, get_selectable_models, model_designations
from app.models.models import AuthUser
from app.models.request_schemas import FormatJobRequest, TailorResumeRequest
from app.models.response import SelectableModel, SelectableModelsResponse
from app.models.schemas import SimplifiedResume
from app.services.auth import require_user
from app.services.billing import get_subscription_plan
from app.services.graph import format_job_listing, tailor_resume_to_job
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


@router.post("/format-job")
@log_api_call("format_job")
async def format_job(payload: FormatJobRequest, request: Request, user: AuthUser = Depends(require_user)):
    """
    Turn a pasted job listing into structured fields. With `save` the job is
    stored and the saved record (with its id) is returned.
    """
    subscription = await get_subscription_plan(user.id)
    logger.info(
        f"Formatting job listing for user {user.id} (plan={subscription.plan.value}, save={payload.save})",
        extra={"request_id": getattr(request.state, 'request_id', 'unknown')}
    )
    job = await format_job_listing(payload.text, payload.config, user.id, subscription.plan, persist=payload.save)
    return job.model_dump(mode="json")


@router.post("/tailor", response_model=SimplifiedResume)
@log_api_call("tailor_resume")
async def tailor_resume(payload: TailorResumeRequest, request: Request, user: AuthUser = Depends(require_user)):
    subscription = await get_subscription_plan(user.id)
    return await tailor_resume_to_job(payload.resume, payload.job, payload.config, user.id, subscription.plan)


@router.get("/models", response_model=SelectableModelsResponse)
@log_api_call("list_models")
async def list_models(request: Request, user: AuthUser = Depends(require_user)):
    """Models the current plan can run on the server's credentials"""
    subscription = await get_subscription_plan(user.id)
    models = [
        SelectableModel(
            id=m.id,
            name=m.name,
            provider=PROVIDERS[m.provider].name,
            is_free=m.features.is_free,
            is_pro=m.features.is_pro,
        )
        for m in get_selectable_models(subscription.is_pro, [])
    ]
    return SelectableModelsResponse(
        plan=subscription.plan.value,
        default_model=get_default_model(subscription.is_pro),
        models=models,
        designations=model_designations(),
    )
