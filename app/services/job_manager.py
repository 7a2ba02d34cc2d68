"""
Job record operations against the jobs collection
"""
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from app.helpers.parsing import normalize_job_record
from app.models.response import DeleteJobResponse
from app.models.schemas import (
    EmploymentType, JobListingFilters, JobListingPage, JobModel, SimplifiedJob, WorkLocation,
)
from app.services.db import jobs_coll, resumes_coll, to_dict
from app.utils.exceptions import ExceptionContext, NotFoundError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class JobManager:
    """Create, list and retire job listings"""

    DEFAULT_COMPANY = "Unknown Company"
    DEFAULT_TITLE = "Untitled Role"
    MAX_PAGE_SIZE = 100

    @staticmethod
    async def _insert(doc: Dict[str, Any]) -> JobModel:
        with ExceptionContext("insert_job", collection="jobs", logger=logger, job_id=doc["id"]):
            # insert_one adds _id to the dict it is given
            await jobs_coll.insert_one(dict(doc))
        return JobModel(**doc)

    @staticmethod
    async def create_job(user_id: str, job: Union[SimplifiedJob, Dict[str, Any]]) -> JobModel:
        """Persist a formatted job listing for user_id"""
        simplified = job if isinstance(job, SimplifiedJob) else normalize_job_record(job)

        doc = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "company": simplified.company or JobManager.DEFAULT_COMPANY,
            "position_title": simplified.position_title or JobManager.DEFAULT_TITLE,
            "job_url": simplified.job_url,
            "description": simplified.description,
            "location": simplified.location,
            "salary_range": simplified.salary_range,
            "keywords": list(simplified.keywords),
            "work_location": (simplified.work_location or WorkLocation.IN_PERSON).value,
            "employment_type": (simplified.employment_type or EmploymentType.FULL_TIME).value,
            "is_active": True,
            "created_at": datetime.now(timezone.utc),
        }

        created = await JobManager._insert(doc)
        logger.info(f"Created job {created.id} for user {user_id}")
        return created

    @staticmethod
    async def create_empty_job(user_id: str) -> JobModel:
        doc = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "company": "New Company",
            "position_title": "New Position",
            "job_url": "",
            "description": "",
            "location": "",
            "salary_range": "",
            "keywords": [],
            "work_location": WorkLocation.IN_PERSON.value,
            "employment_type": EmploymentType.FULL_TIME.value,
            "is_active": True,
            "created_at": datetime.now(timezone.utc),
        }
        created = await JobManager._insert(doc)
        logger.info(f"Created empty job {created.id} for user {user_id}")
        return created

    @staticmethod
    async def get_job(job_id: str) -> JobModel:
        with ExceptionContext("find_job", collection="jobs", logger=logger, job_id=job_id):
            doc = await jobs_coll.find_one({"id": job_id})
        if not doc:
            raise NotFoundError("Job not found", resource="job", resource_id=job_id)
        return JobModel(**to_dict(doc))

    @staticmethod
    def build_listing_query(filters: Optional[JobListingFilters]) -> Dict[str, Any]:
        query: Dict[str, Any] = {"is_active": True}
        if filters:
            if filters.work_location:
                query["work_location"] = filters.work_location.value
            if filters.employment_type:
                query["employment_type"] = filters.employment_type.value
            if filters.keywords:
                query["keywords"] = {"$all": filters.keywords}
        return query

    @staticmethod
    async def get_job_listings(page: int = 1, page_size: int = 10,
                               filters: Optional[JobListingFilters] = None) -> JobListingPage:
        """Active jobs, newest first, one page at a time"""
        page = max(1, page)
        page_size = max(1, min(page_size, JobManager.MAX_PAGE_SIZE))
        offset = (page - 1) * page_size
        query = JobManager.build_listing_query(filters)

        with ExceptionContext("list_jobs", collection="jobs", logger=logger, page=page):
            cursor = jobs_coll.find(query).sort("created_at", -1).skip(offset).limit(page_size)
            docs = await cursor.to_list(length=page_size)
            total_count = await jobs_coll.count_documents(query)

        return JobListingPage(
            jobs=[JobModel(**to_dict(d)) for d in docs],
            total_count=total_count,
            current_page=page,
            total_pages=math.ceil(total_count / page_size) if total_count else 0,
        )

    @staticmethod
    async def delete_job(user_id: str, job_id: str) -> DeleteJobResponse:
        """
        Remove a job owned by user_id. Jobs that tailored resumes still point
        at are deactivated instead of deleted.
        """
        with ExceptionContext("delete_job", collection="jobs", logger=logger, job_id=job_id):
            job = await jobs_coll.find_one({"id": job_id, "user_id": user_id})
            if not job:
                raise NotFoundError("Job not found", resource="job", resource_id=job_id)

            affected = await resumes_coll.find({"job_id": job_id}, {"id": 1}).to_list(length=None)
            affected_ids = [r["id"] for r in affected if r.get("id")]

            if affected_ids:
                await jobs_coll.update_one({"id": job_id}, {"$set": {"is_active": False}})
            else:
                await jobs_coll.delete_one({"id": job_id})

        soft = bool(affected_ids)
        logger.info(f"{'Deactivated' if soft else 'Deleted'} job {job_id} (referenced by {len(affected_ids)} resumes)")
        return DeleteJobResponse(
            job_id=job_id,
            soft_deleted=soft,
            affected_resume_ids=affected_ids,
            message="Job deactivated" if soft else "Job deleted",
        )

    @staticmethod
    async def delete_tailored_job(user_id: str, job_id: str) -> DeleteJobResponse:
        """Always a soft delete: the tailored resume keeps its job record"""
        with ExceptionContext("deactivate_job", collection="jobs", logger=logger, job_id=job_id):
            result = await jobs_coll.update_one(
                {"id": job_id, "user_id": user_id},
                {"$set": {"is_active": False}}
            )
        if result.matched_count == 0:
            raise NotFoundError("Job not found", resource="job", resource_id=job_id)

        logger.info(f"Deactivated tailored job {job_id}")
        return DeleteJobResponse(job_id=job_id, soft_deleted=True, message="Job deactivated")
