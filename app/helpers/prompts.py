"""
Prompt construction for scoring, job extraction and tailoring.

Every prompt pairs a fixed system preamble (output rules stated as orders,
plus a literal example of a valid result) with a request prompt carrying the
JSON context. Models follow an example far more reliably than a bare schema,
so each branch ships its own example.
"""
import json
from typing import Any, Dict, NamedTuple, Optional

from app.helpers.parsing import score_output_contract


class PromptPayload(NamedTuple):
    system: str
    prompt: str


def _as_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


# ==================== SCORING ====================

_BASE_SCORE_EXAMPLE = {
    "overallScore": {"score": 72, "reason": "Solid experience section, weak quantification."},
    "completeness": {
        "contactInformation": {"score": 90, "reason": "Email and phone present, no LinkedIn."},
        "detailLevel": {"score": 65, "reason": "Several roles have a single bullet."},
    },
    "impactScore": {
        "activeVoiceUsage": {"score": 80, "reason": "Most bullets start with action verbs."},
        "quantifiedAchievements": {"score": 45, "reason": "Only two bullets include numbers."},
    },
    "roleMatch": {
        "skillsRelevance": {"score": 78, "reason": "Skills fit a frontend engineering role."},
        "experienceAlignment": {"score": 74, "reason": "Five years of React work."},
        "educationFit": {"score": 70, "reason": "Relevant degree, no certifications."},
    },
    "miscellaneous": {
        "readability": {"score": 82, "reason": "Consistent formatting and tense."},
        "atsCompatibility": {"score": 76, "reason": "Standard headings, no tables."},
    },
    "overallImprovements": [
        "Quantify the impact of each project (users, latency, revenue).",
        "Add a LinkedIn profile to the contact section.",
        "Expand single-bullet roles to two or three bullets.",
    ],
    "isTailoredResume": False,
}

_TAILORED_SCORE_EXAMPLE = {
    **_BASE_SCORE_EXAMPLE,
    "jobAlignment": {
        "keywordMatch": {
            "score": 60,
            "reason": "Matches React and TypeScript, misses GraphQL.",
            "matchedKeywords": ["React", "TypeScript"],
            "missingKeywords": ["GraphQL"],
        },
        "requirementsMatch": {
            "score": 70,
            "reason": "Meets the experience bar, no API design examples.",
            "matchedRequirements": ["5+ years frontend"],
            "gapAnalysis": ["No evidence of schema or API design"],
        },
        "companyFit": {
            "score": 68,
            "reason": "Startup experience fits a small product team.",
            "suggestions": ["Mention ownership of features end to end."],
        },
    },
    "jobSpecificImprovements": [
        "Add GraphQL work if you have any, even from side projects.",
        "Lead with the bullets that mention React performance work.",
        "Mirror the posting's wording for collaboration with designers.",
    ],
    "isTailoredResume": True,
}

SCORE_SYSTEM_PROMPT = """You are an expert resume reviewer and ATS specialist.
Score the resume you are given and return ONE JSON object that matches the output contract exactly.

RULES:
- Every "score" is a number from 0 to 100. Never go outside that range.
- Every "reason" is one or two plain sentences grounded in the resume text.
- Include "miscellaneous" with 2-3 extra metrics, each {{"score": number, "reason": "string"}}.
- Include 3-5 "overallImprovements" as short imperative sentences.
- Do not invent facts about the candidate.
{branch_rules}

OUTPUT CONTRACT (JSON schema):
{contract}

EXAMPLE OF A VALID RESULT:
{example}
"""

_BASE_BRANCH_RULES = """- This is a base resume scored on its own. Set "isTailoredResume" to false.
- Do NOT include "jobAlignment" or "jobSpecificImprovements"."""

_TAILORED_BRANCH_RULES = """- This resume is scored against a specific job. Set "isTailoredResume" to true.
- "jobAlignment" is REQUIRED and must contain "keywordMatch", "requirementsMatch" and "companyFit".
  - keywordMatch: percent of the job's keywords present, with matchedKeywords and missingKeywords.
  - requirementsMatch: hard and soft requirements met, and a gapAnalysis of what is missing.
  - companyFit: signals of fit with the company and concrete suggestions.
- "jobSpecificImprovements" is REQUIRED with 3-5 items."""


def build_score_prompt(resume: Dict[str, Any], job: Optional[Dict[str, Any]]) -> PromptPayload:
    has_job = job is not None
    system = SCORE_SYSTEM_PROMPT.format(
        branch_rules=_TAILORED_BRANCH_RULES if has_job else _BASE_BRANCH_RULES,
        contract=_as_json(score_output_contract(has_job)),
        example=_as_json(_TAILORED_SCORE_EXAMPLE if has_job else _BASE_SCORE_EXAMPLE),
    )

    raw_text = resume.get("raw_text") if isinstance(resume.get("raw_text"), str) else None
    parts = []
    if raw_text:
        parts.append(f"RESUME TEXT:\n{raw_text}")
    else:
        parts.append(f"RESUME JSON:\n{_as_json(resume)}")

    if has_job:
        parts.append(f"This is a tailored resume. JOB JSON:\n{_as_json(job)}")
    else:
        parts.append("This is a base resume. There is no job to compare against.")

    return PromptPayload(system=system, prompt="\n\n".join(parts))


# ==================== JOB FORMATTING ====================

_JOB_EXAMPLE = {
    "content": {
        "company": "Acme Analytics",
        "position_title": "Senior Frontend Engineer",
        "job_url": "",
        "location": "Toronto, ON",
        "salary_range": "$140,000 - $165,000",
        "work_location": "hybrid",
        "employment_type": "full_time",
        "description": "• Build dashboard features in React\n• Own the GraphQL client layer\n• Mentor two junior engineers\n\nAcme Analytics is hiring a senior frontend engineer to build ...",
        "keywords": ["React", "GraphQL", "TypeScript", "Mentoring"],
    }
}

JOB_FORMAT_SYSTEM_PROMPT = """You are an AI assistant specializing in structured data extraction from job listings.
Return ONE JSON object of the form {{"content": {{...job fields...}}}} and nothing else.

RULES:
- Fields: company, position_title, job_url, location, salary_range, work_location, employment_type, description, keywords.
- work_location is one of "remote", "in_person", "hybrid", or "" when the listing does not say.
- employment_type is one of "full_time", "part_time", "co_op", "internship", or "" when the listing does not say.
- If a field is missing or uncertain, return "" (empty string). Never fabricate a value.
- For "description": start with 3-5 bullet points of the most important responsibilities, each starting with "• " on a new line,
  then a clean paragraph version of the full job description with non-job fluff removed.
- "keywords" covers technical skills, soft skills, industry knowledge, required qualifications and responsibilities.
  Deduplicate keywords and keep their exact casing from the listing ("React.js" stays "React.js").

EXAMPLE OF A VALID RESULT:
{example}
"""


def build_job_format_prompt(job_listing: str) -> PromptPayload:
    system = JOB_FORMAT_SYSTEM_PROMPT.format(example=_as_json(_JOB_EXAMPLE))
    prompt = (
        "Analyze this job listing and return data matching the rules exactly.\n\n"
        "FORMAT THE FOLLOWING JOB LISTING AS A JSON OBJECT:\n"
        f"{job_listing.strip()}"
    )
    return PromptPayload(system=system, prompt=prompt)


# ==================== TAILORING ====================

_TAILOR_EXAMPLE = {
    "content": {
        "target_role": "Senior Frontend Engineer",
        "work_experience": [
            {
                "company": "Brightline",
                "position": "Frontend Engineer",
                "location": "Remote",
                "date": "2021 - Present",
                "description": [
                    "Faced with a 6s dashboard load time, profiled React rendering and introduced memoized selectors, cutting load time to 2s.",
                ],
                "technologies": ["React", "TypeScript"],
            }
        ],
        "education": [
            {"school": "University of Waterloo", "degree": "BASc", "field": "Computer Engineering",
             "location": "Waterloo, ON", "date": "2014 - 2019", "gpa": None, "achievements": []}
        ],
        "skills": [{"category": "Frontend", "items": ["React", "TypeScript", "CSS"]}],
        "projects": [],
    }
}

TAILOR_SYSTEM_PROMPT = """You are an advanced AI resume transformer that optimizes resumes for target roles using ATS-aware strategies.
Rewrite the resume you are given so it aligns with the job description, and return ONE JSON object of the form {{"content": {{...resume...}}}}.

OBJECTIVES:
1) Integrate job-specific terminology and reorder content to foreground the most relevant experience.
2) Write bullets with the STAR structure (Situation, Task, Action, Result) wherever the resume supports it.
3) Quantify impact only where the original resume gives the numbers.

STRICT CONSTRAINTS:
- Never fabricate tools, technologies, versions, employers, titles or dates.
- Keep every position and keep the original chronological order of positions.
- If the job asks for something the candidate lacks, map to the closest real experience instead of inventing it.
- Keep the same fields as the input: target_role, work_experience, education, skills, projects.
- Remove any internal annotations from the final output.

EXAMPLE OF A VALID RESULT:
{example}
"""


def build_tailor_prompt(resume: Dict[str, Any], job: Dict[str, Any]) -> PromptPayload:
    system = TAILOR_SYSTEM_PROMPT.format(example=_as_json(_TAILOR_EXAMPLE))
    prompt = (
        f"This is the Resume:\n{_as_json(resume)}\n\n"
        f"This is the Job Description:\n{_as_json(job)}"
    )
    return PromptPayload(system=system, prompt=prompt)
