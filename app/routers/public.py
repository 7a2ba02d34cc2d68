"""
Public, unauthenticated resume scoring.

Errors come back as {"error": "..."}: 429 when the caller is over quota,
400 for everything else.
"""
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.services.graph import score_resume
from app.services.rate_limiter import client_fingerprint
from app.utils import config
from app.utils.exceptions import PersistenceFailure, RateLimitExceeded, ResumeAIBaseException
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


def _public_response(content: Dict[str, Any], status_code: int = 200, headers: Dict[str, str] = None) -> JSONResponse:
    response_headers = {
        "Cache-Control": "no-store",
        "X-App-Version": config.APP_VERSION,
    }
    if headers:
        response_headers.update(headers)
    return JSONResponse(status_code=status_code, content=content, headers=response_headers)


async def _read_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/resume-score")
@log_api_call("public_resume_score")
async def public_resume_score(request: Request):
    """Score a resume, optionally against a job description"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    body = await _read_body(request)
    identity = client_fingerprint(request)

    try:
        score = await score_resume(body.get("resume"), body.get("job"), identity)
    except RateLimitExceeded as e:
        headers = {"Retry-After": str(e.retry_after)} if e.retry_after else None
        return _public_response({"error": e.message}, status_code=429, headers=headers)
    except ResumeAIBaseException as e:
        logger.warning(
            f"Public scoring failed: {e.error_code} - {e.message}",
            extra={"request_id": request_id, "error_code": e.error_code}
        )
        message = PersistenceFailure().message if isinstance(e, PersistenceFailure) else e.message
        return _public_response({"error": message}, status_code=400)

    logger.info(
        f"Scored resume (tailored={score.is_tailored_resume})",
        extra={"request_id": request_id}
    )
    return _public_response(score.to_response())
