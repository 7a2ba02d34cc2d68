from pydantic import BaseModel, Field
from typing import Any, Dict

from app.models.ai_settings import AIConfig

# Input schemas for the HTTP surface. Bodies are permissive on purpose:
# anything shaped loosely like a resume or job is accepted here and checked
# properly by the pipeline's validate step.


class FormatJobRequest(BaseModel):
    text: str = Field(min_length=1)
    config: AIConfig = Field(default_factory=AIConfig)
    save: bool = False

class TailorResumeRequest(BaseModel):
    resume: Dict[str, Any]
    job: Dict[str, Any]
    config: AIConfig = Field(default_factory=AIConfig)

class CreateTailoredResumeRequest(BaseModel):
    base_resume_id: str
    job_description: str = ""
    use_ai: bool = True
    config: AIConfig = Field(default_factory=AIConfig)
