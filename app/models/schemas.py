from pydantic import BaseModel, ConfigDict, Field, StrictFloat, field_validator, model_validator
from typing import Dict, List, Optional, Union
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -------- Resume score --------
class CamelModel(BaseModel):
    """Wire names are camelCase, attributes stay snake_case"""
    model_config = ConfigDict(populate_by_name=True)


class ScoreReason(CamelModel):
    # booleans and numeric strings are not scores
    score: float = Field(ge=0, le=100, strict=True)
    reason: str = ""


class Completeness(CamelModel):
    contact_information: ScoreReason = Field(alias="contactInformation")
    detail_level: ScoreReason = Field(alias="detailLevel")


class ImpactScore(CamelModel):
    active_voice_usage: ScoreReason = Field(alias="activeVoiceUsage")
    quantified_achievements: ScoreReason = Field(alias="quantifiedAchievements")


class RoleMatch(CamelModel):
    skills_relevance: ScoreReason = Field(alias="skillsRelevance")
    experience_alignment: ScoreReason = Field(alias="experienceAlignment")
    education_fit: ScoreReason = Field(alias="educationFit")


class KeywordMatch(ScoreReason):
    matched_keywords: List[str] = Field(default_factory=list, alias="matchedKeywords")
    missing_keywords: List[str] = Field(default_factory=list, alias="missingKeywords")


class RequirementsMatch(ScoreReason):
    matched_requirements: List[str] = Field(default_factory=list, alias="matchedRequirements")
    gap_analysis: List[str] = Field(default_factory=list, alias="gapAnalysis")


class CompanyFit(ScoreReason):
    suggestions: List[str] = Field(default_factory=list)


class JobAlignment(CamelModel):
    keyword_match: KeywordMatch = Field(alias="keywordMatch")
    requirements_match: RequirementsMatch = Field(alias="requirementsMatch")
    company_fit: CompanyFit = Field(alias="companyFit")


MiscMetric = Union[ScoreReason, StrictFloat]


class ResumeScore(CamelModel):
    overall_score: ScoreReason = Field(alias="overallScore")
    completeness: Completeness
    impact_score: ImpactScore = Field(alias="impactScore")
    role_match: RoleMatch = Field(alias="roleMatch")
    job_alignment: Optional[JobAlignment] = Field(default=None, alias="jobAlignment")
    miscellaneous: Dict[str, MiscMetric] = Field(default_factory=dict)
    overall_improvements: List[str] = Field(default_factory=list, alias="overallImprovements")
    job_specific_improvements: Optional[List[str]] = Field(default=None, alias="jobSpecificImprovements")
    is_tailored_resume: bool = Field(alias="isTailoredResume")

    @field_validator("miscellaneous")
    @classmethod
    def validate_misc_ranges(cls, v):
        for name, metric in v.items():
            value = metric.score if isinstance(metric, ScoreReason) else metric
            if not 0 <= value <= 100:
                raise ValueError(f'Metric "{name}" must be between 0 and 100')
        return v

    @model_validator(mode="after")
    def validate_tailored_fields(self):
        has_alignment = self.job_alignment is not None
        has_job_improvements = self.job_specific_improvements is not None
        if has_alignment != has_job_improvements:
            raise ValueError("jobAlignment and jobSpecificImprovements must be present together")
        if has_alignment != self.is_tailored_resume:
            raise ValueError("isTailoredResume must be true exactly when jobAlignment is present")
        return self

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# -------- Jobs --------
class WorkLocation(str, Enum):
    REMOTE = "remote"
    IN_PERSON = "in_person"
    HYBRID = "hybrid"


class EmploymentType(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CO_OP = "co_op"
    INTERNSHIP = "internship"


def dedupe_keywords(keywords: List[str]) -> List[str]:
    """Case-insensitive dedup, first spelling wins"""
    seen = set()
    out = []
    for kw in keywords:
        kw = (kw or "").strip()
        if not kw or kw.lower() in seen:
            continue
        seen.add(kw.lower())
        out.append(kw)
    return out


class SimplifiedJob(BaseModel):
    company: str = ""
    position_title: str = ""
    job_url: str = ""
    location: str = ""
    salary_range: str = ""
    work_location: Optional[WorkLocation] = None
    employment_type: Optional[EmploymentType] = None
    description: str = ""
    keywords: List[str] = Field(default_factory=list)

    @field_validator("company", "position_title", "job_url", "location", "salary_range", "description", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("work_location", "employment_type", mode="before")
    @classmethod
    def empty_enum_to_none(cls, v):
        return None if v == "" else v

    @field_validator("keywords")
    @classmethod
    def unique_keywords(cls, v):
        return dedupe_keywords(v)


class JobModel(SimplifiedJob):
    id: str
    user_id: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class JobListingFilters(BaseModel):
    work_location: Optional[WorkLocation] = None
    employment_type: Optional[EmploymentType] = None
    keywords: List[str] = Field(default_factory=list)


class JobListingPage(BaseModel):
    jobs: List[JobModel]
    total_count: int
    current_page: int
    total_pages: int


# -------- Resumes --------
class WorkExperience(BaseModel):
    company: str = ""
    position: str = ""
    location: str = ""
    date: str = ""
    description: List[str] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)


class Education(BaseModel):
    school: str = ""
    degree: str = ""
    field: str = ""
    location: str = ""
    date: str = ""
    gpa: Optional[str] = None
    achievements: List[str] = Field(default_factory=list)

    @field_validator("gpa", mode="before")
    @classmethod
    def gpa_as_text(cls, v):
        if v is None or v == "":
            return None
        return str(v)


class SkillGroup(BaseModel):
    category: str = ""
    items: List[str] = Field(default_factory=list)


class Project(BaseModel):
    name: str = ""
    description: List[str] = Field(default_factory=list)
    date: str = ""
    technologies: List[str] = Field(default_factory=list)
    url: str = ""
    github_url: str = ""


class SimplifiedResume(BaseModel):
    target_role: str = ""
    work_experience: List[WorkExperience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    skills: List[SkillGroup] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)


class ResumeModel(SimplifiedResume):
    id: str
    user_id: str
    name: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_number: str = ""
    location: str = ""
    website: str = ""
    linkedin_url: str = ""
    github_url: str = ""
    is_base_resume: bool = True
    job_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
