from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from app.models.schemas import JobModel, ResumeModel


class DeleteJobResponse(BaseModel):
    job_id: str
    soft_deleted: bool
    affected_resume_ids: List[str] = Field(default_factory=list)
    message: str


class TailoredResumeResponse(BaseModel):
    resume: ResumeModel
    job: Optional[JobModel] = None


class SelectableModel(BaseModel):
    id: str
    name: str
    provider: str
    is_free: bool
    is_pro: bool


class SelectableModelsResponse(BaseModel):
    plan: str
    default_model: str
    models: List[SelectableModel]
    designations: Dict[str, str] = Field(default_factory=dict)
