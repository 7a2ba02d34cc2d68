"""
Resume record operations against the resumes collection
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from app.models.schemas import ResumeModel, SimplifiedResume
from app.services.db import resumes_coll, to_dict
from app.utils.exceptions import ExceptionContext, NotFoundError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

PERSONAL_FIELDS = (
    "first_name", "last_name", "email", "phone_number", "location",
    "website", "linkedin_url", "github_url",
)


class ResumeManager:

    @staticmethod
    async def get_resume(user_id: str, resume_id: str) -> ResumeModel:
        with ExceptionContext("find_resume", collection="resumes", logger=logger, resume_id=resume_id):
            doc = await resumes_coll.find_one({"id": resume_id, "user_id": user_id})
        if not doc:
            raise NotFoundError("Resume not found", resource="resume", resource_id=resume_id)
        return ResumeModel(**to_dict(doc))

    @staticmethod
    def tailored_name(job_title: str, company_name: str) -> str:
        job_title = (job_title or "").strip()
        company_name = (company_name or "").strip()
        if job_title and company_name:
            return f"{job_title} at {company_name}"
        return job_title or "Tailored Resume"

    @staticmethod
    async def create_tailored_resume(user_id: str, base_resume: ResumeModel, job_id: Optional[str],
                                     job_title: str, company_name: str,
                                     content: SimplifiedResume) -> ResumeModel:
        """Wrap tailored content into a new resume that keeps the base resume's contact details"""
        now = datetime.now(timezone.utc)
        doc = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "name": ResumeManager.tailored_name(job_title, company_name),
            **{field: getattr(base_resume, field) for field in PERSONAL_FIELDS},
            **content.model_dump(),
            "is_base_resume": False,
            "job_id": job_id,
            "created_at": now,
            "updated_at": now,
        }
        doc["target_role"] = content.target_role or base_resume.target_role

        with ExceptionContext("insert_resume", collection="resumes", logger=logger, job_id=job_id):
            await resumes_coll.insert_one(dict(doc))

        logger.info(f"Created tailored resume {doc['id']} from base {base_resume.id}")
        return ResumeModel(**doc)
