"""
Boundary validation and normalization for resume scores, jobs and resumes
"""
import copy
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from app.models.schemas import (
    EmploymentType, ResumeScore, SimplifiedJob, SimplifiedResume, WorkLocation,
)
from app.utils.exceptions import SchemaViolation

UNKNOWN_SENTINEL = "<UNKNOWN>"
TAILORED_ONLY_FIELDS = ("jobAlignment", "jobSpecificImprovements")


def _field_path(loc) -> str:
    return ".".join(str(part) for part in loc)


def _validate(model: type, value: Any, label: str) -> BaseModel:
    if not isinstance(value, dict):
        raise SchemaViolation(f"{label} must be a JSON object", field="$", value=type(value).__name__)
    try:
        return model.model_validate(value)
    except ValidationError as e:
        first = e.errors()[0]
        path = _field_path(first.get("loc", ())) or "$"
        raise SchemaViolation(
            f"Invalid {label} at '{path}': {first.get('msg', 'invalid value')}",
            field=path,
            value=first.get("input") if not isinstance(first.get("input"), (dict, list)) else None,
            details={"error_count": e.error_count()},
        ) from e


def sanitize_unknown_strings(data: Any) -> Any:
    """Replace the <UNKNOWN> placeholder some models emit with an empty string"""
    if isinstance(data, str):
        return "" if data == UNKNOWN_SENTINEL else data
    if isinstance(data, list):
        return [sanitize_unknown_strings(item) for item in data]
    if isinstance(data, dict):
        return {key: sanitize_unknown_strings(value) for key, value in data.items()}
    return data


def normalize_work_location(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    val = str(value).lower()
    if val in {w.value for w in WorkLocation}:
        return val
    if "remote" in val:
        return WorkLocation.REMOTE.value
    if "hybrid" in val:
        return WorkLocation.HYBRID.value
    if "in-person" in val or "in person" in val or "in_person" in val or "office" in val or "onsite" in val or "on-site" in val:
        return WorkLocation.IN_PERSON.value
    return None


def normalize_employment_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    val = re.sub(r"[\s\-]+", "_", str(value).strip().lower())
    if val in {e.value for e in EmploymentType}:
        return val
    if "intern" in val:
        return EmploymentType.INTERNSHIP.value
    if "co_op" in val or "coop" in val:
        return EmploymentType.CO_OP.value
    if "part" in val:
        return EmploymentType.PART_TIME.value
    if "full" in val or "permanent" in val:
        return EmploymentType.FULL_TIME.value
    return None


def normalize_job_record(raw: Dict[str, Any]) -> SimplifiedJob:
    """
    Bring a loosely-shaped job record (older clients, pasted JSON, model output)
    into a SimplifiedJob. Accepts the legacy `company_name` key.
    """
    if not isinstance(raw, dict):
        raise SchemaViolation("Job must be a JSON object", field="$", value=type(raw).__name__)

    data = sanitize_unknown_strings(copy.deepcopy(raw))

    if not data.get("company") and data.get("company_name"):
        data["company"] = data["company_name"]
    data.pop("company_name", None)

    data["work_location"] = normalize_work_location(data.get("work_location"))
    data["employment_type"] = normalize_employment_type(data.get("employment_type"))

    keywords = data.get("keywords")
    if isinstance(keywords, str):
        data["keywords"] = [k.strip() for k in keywords.split(",") if k.strip()]
    elif keywords is None:
        data["keywords"] = []

    known = set(SimplifiedJob.model_fields)
    return _validate(SimplifiedJob, {k: v for k, v in data.items() if k in known}, "job")


def validate_simplified_job(value: Any, strict: bool = True) -> SimplifiedJob:
    if not strict:
        return normalize_job_record(value)
    return _validate(SimplifiedJob, value, "job")


def validate_simplified_resume(value: Any, strict: bool = True) -> SimplifiedResume:
    if not strict and isinstance(value, dict):
        value = sanitize_unknown_strings(value)
        known = set(SimplifiedResume.model_fields)
        value = {k: v for k, v in value.items() if k in known and v is not None}
    return _validate(SimplifiedResume, value, "resume")


def validate_resume_score(value: Any, expect_tailored: Optional[bool] = None) -> ResumeScore:
    """
    Strict check of a scoring result. With expect_tailored set, the presence of
    the job-specific blocks must also match whether a job was supplied.
    """
    score = _validate(ResumeScore, value, "resume score")

    if expect_tailored is not None and score.is_tailored_resume != expect_tailored:
        if expect_tailored:
            message = "A job was supplied but the result is missing jobAlignment"
        else:
            message = "No job was supplied but the result contains jobAlignment"
        raise SchemaViolation(message, field="jobAlignment")

    return score


def score_output_contract(has_job: bool) -> Dict[str, Any]:
    """JSON schema handed to the model; job-only blocks are required iff a job is present"""
    schema = ResumeScore.model_json_schema(by_alias=True)
    required = [f for f in schema.get("required", []) if f not in TAILORED_ONLY_FIELDS]

    if has_job:
        required.extend(TAILORED_ONLY_FIELDS)
    else:
        for name in TAILORED_ONLY_FIELDS:
            schema.get("properties", {}).pop(name, None)
        defs = schema.get("$defs", {})
        for name in ("JobAlignment", "KeywordMatch", "RequirementsMatch", "CompanyFit"):
            defs.pop(name, None)

    schema["required"] = required
    return schema
