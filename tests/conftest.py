import copy
import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest

from app.services import rate_limiter
from app.services.rate_limiter import InMemoryRateLimiter


BASE_SCORE = {
    "overallScore": {"score": 72, "reason": "Solid experience, weak quantification."},
    "completeness": {
        "contactInformation": {"score": 90, "reason": "Email and phone present."},
        "detailLevel": {"score": 65, "reason": "Some roles have a single bullet."},
    },
    "impactScore": {
        "activeVoiceUsage": {"score": 80, "reason": "Bullets start with verbs."},
        "quantifiedAchievements": {"score": 40, "reason": "Few numbers."},
    },
    "roleMatch": {
        "skillsRelevance": {"score": 78, "reason": "React heavy."},
        "experienceAlignment": {"score": 74, "reason": "Five years of React."},
        "educationFit": {"score": 70, "reason": "Relevant degree."},
    },
    "miscellaneous": {
        "readability": {"score": 82, "reason": "Consistent formatting."},
        "atsCompatibility": 76,
    },
    "overallImprovements": ["Quantify impact.", "Add a LinkedIn profile."],
    "isTailoredResume": False,
}

JOB_ALIGNMENT = {
    "keywordMatch": {
        "score": 60, "reason": "React yes, GraphQL no.",
        "matchedKeywords": ["React"], "missingKeywords": ["GraphQL"],
    },
    "requirementsMatch": {
        "score": 70, "reason": "Meets the experience bar.",
        "matchedRequirements": ["5 years frontend"], "gapAnalysis": ["No GraphQL"],
    },
    "companyFit": {"score": 65, "reason": "Startup background.", "suggestions": ["Mention ownership."]},
}


class FakeHandle:
    """Stands in for an AI model handle; records what it was asked"""

    def __init__(self, output=None, error=None, model_name="fake-model"):
        self.model_name = model_name
        self.output = output
        self.error = error
        self.calls = []

    async def generate_object(self, system, prompt, temperature=0.2):
        self.calls.append({"system": system, "prompt": prompt, "temperature": temperature})
        if self.error:
            raise self.error
        return copy.deepcopy(self.output)


@pytest.fixture(autouse=True)
def fresh_rate_limiter(monkeypatch):
    monkeypatch.setattr(rate_limiter, "_limiter", InMemoryRateLimiter())
    yield


@pytest.fixture
def base_score():
    return copy.deepcopy(BASE_SCORE)


@pytest.fixture
def tailored_score():
    score = copy.deepcopy(BASE_SCORE)
    score["jobAlignment"] = copy.deepcopy(JOB_ALIGNMENT)
    score["jobSpecificImprovements"] = ["Add GraphQL work.", "Lead with React performance."]
    score["isTailoredResume"] = True
    return score


@pytest.fixture
def sample_resume():
    return {
        "target_role": "Frontend Engineer",
        "work_experience": [
            {
                "company": "Brightline",
                "position": "Frontend Engineer",
                "date": "2021 - Present",
                "description": ["Built dashboards in React"],
                "technologies": ["React"],
            }
        ],
        "education": [{"school": "Waterloo", "degree": "BASc", "gpa": 3.8}],
        "skills": [{"category": "Frontend", "items": ["React", "TypeScript"]}],
        "projects": [],
    }


@pytest.fixture
def sample_job():
    return {
        "company": "Acme",
        "position_title": "Senior Frontend Engineer",
        "location": "Toronto",
        "work_location": "hybrid",
        "employment_type": "full_time",
        "description": "Looking for a React + GraphQL engineer",
        "keywords": ["React", "GraphQL"],
    }
