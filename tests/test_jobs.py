import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime, timezone
from types import SimpleNamespace

from app.models.models import AuthUser
from app.services.auth import require_user


@pytest.fixture
def test_app():
    from fastapi import FastAPI
    from app.routers import jobs
    from app.middleware.error_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(jobs.router, prefix="/api/jobs")
    app.dependency_overrides[require_user] = lambda: AuthUser(id="user-1", email="dev@example.com")
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


def _job_doc(job_id="job-1", **overrides):
    doc = {
        "_id": "mongo-id",
        "id": job_id,
        "user_id": "user-1",
        "company": "Acme",
        "position_title": "Frontend Engineer",
        "job_url": "",
        "description": "Build things",
        "location": "Toronto",
        "salary_range": "",
        "keywords": ["React"],
        "work_location": "remote",
        "employment_type": "full_time",
        "is_active": True,
        "created_at": datetime.now(timezone.utc),
    }
    doc.update(overrides)
    return doc


def _cursor(docs):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


class TestJobsRouter:
    """Test cases for jobs router"""

    @patch('app.services.job_manager.jobs_coll')
    def test_create_job_round_trip(self, mock_jobs_coll, client):
        """Saved job keeps every field it was given"""
        mock_jobs_coll.insert_one = AsyncMock()
        payload = {
            "company": "Acme",
            "position_title": "Senior Frontend Engineer",
            "job_url": "https://acme.example/jobs/1",
            "location": "Toronto, ON",
            "salary_range": "$140k - $165k",
            "work_location": "hybrid",
            "employment_type": "part_time",
            "description": "• Build dashboards",
            "keywords": ["React", "GraphQL"],
        }

        response = client.post("/api/jobs", json=payload)

        assert response.status_code == 200
        data = response.json()
        for key, value in payload.items():
            assert data[key] == value
        assert data["user_id"] == "user-1"
        assert data["is_active"] is True
        assert data["id"]

        stored = mock_jobs_coll.insert_one.call_args.args[0]
        assert stored["id"] == data["id"]
        assert stored["work_location"] == "hybrid"

    @patch('app.services.job_manager.jobs_coll')
    def test_create_job_applies_defaults(self, mock_jobs_coll, client):
        mock_jobs_coll.insert_one = AsyncMock()

        response = client.post("/api/jobs", json={"company_name": "", "keywords": "React, react"})

        assert response.status_code == 200
        data = response.json()
        assert data["company"] == "Unknown Company"
        assert data["position_title"] == "Untitled Role"
        assert data["work_location"] == "in_person"
        assert data["employment_type"] == "full_time"
        assert data["keywords"] == ["React"]

    @patch('app.services.job_manager.jobs_coll')
    def test_create_job_invalid_field(self, mock_jobs_coll, client):
        mock_jobs_coll.insert_one = AsyncMock()

        response = client.post("/api/jobs", json={"company": "Acme", "keywords": 12})

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "SCHEMA_VIOLATION"
        assert data["details"]["field"] == "keywords"
        mock_jobs_coll.insert_one.assert_not_called()

    @patch('app.services.job_manager.jobs_coll')
    def test_create_empty_job(self, mock_jobs_coll, client):
        mock_jobs_coll.insert_one = AsyncMock()

        response = client.post("/api/jobs/empty")

        assert response.status_code == 200
        data = response.json()
        assert data["company"] == "New Company"
        assert data["position_title"] == "New Position"

    @patch('app.services.job_manager.jobs_coll')
    def test_list_jobs_with_filters(self, mock_jobs_coll, client):
        mock_jobs_coll.find = MagicMock(return_value=_cursor([_job_doc("job-1"), _job_doc("job-2")]))
        mock_jobs_coll.count_documents = AsyncMock(return_value=12)

        response = client.get("/api/jobs?page=2&page_size=5&work_location=remote&keywords=React,%20GraphQL")

        assert response.status_code == 200
        data = response.json()
        assert data["total_count"] == 12
        assert data["current_page"] == 2
        assert data["total_pages"] == 3
        assert [j["id"] for j in data["jobs"]] == ["job-1", "job-2"]

        query = mock_jobs_coll.find.call_args.args[0]
        assert query == {"is_active": True, "work_location": "remote", "keywords": {"$all": ["React", "GraphQL"]}}
        cursor = mock_jobs_coll.find.return_value
        cursor.sort.assert_called_with("created_at", -1)
        cursor.skip.assert_called_with(5)
        cursor.limit.assert_called_with(5)

    def test_list_jobs_rejects_oversized_page(self, client):
        response = client.get("/api/jobs?page_size=500")

        assert response.status_code == 422

    @patch('app.services.job_manager.jobs_coll')
    def test_get_job_not_found(self, mock_jobs_coll, client):
        mock_jobs_coll.find_one = AsyncMock(return_value=None)

        response = client.get("/api/jobs/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    @patch('app.services.job_manager.resumes_coll')
    @patch('app.services.job_manager.jobs_coll')
    def test_delete_unreferenced_job_is_hard_delete(self, mock_jobs_coll, mock_resumes_coll, client):
        mock_jobs_coll.find_one = AsyncMock(return_value=_job_doc())
        mock_jobs_coll.delete_one = AsyncMock()
        mock_jobs_coll.update_one = AsyncMock()
        mock_resumes_coll.find = MagicMock(return_value=_cursor([]))

        response = client.delete("/api/jobs/job-1")

        assert response.status_code == 200
        assert response.json()["soft_deleted"] is False
        mock_jobs_coll.delete_one.assert_awaited_once_with({"id": "job-1"})
        mock_jobs_coll.update_one.assert_not_called()

    @patch('app.services.job_manager.resumes_coll')
    @patch('app.services.job_manager.jobs_coll')
    def test_delete_referenced_job_is_soft_delete(self, mock_jobs_coll, mock_resumes_coll, client):
        mock_jobs_coll.find_one = AsyncMock(return_value=_job_doc())
        mock_jobs_coll.delete_one = AsyncMock()
        mock_jobs_coll.update_one = AsyncMock()
        mock_resumes_coll.find = MagicMock(return_value=_cursor([{"id": "resume-7"}]))

        response = client.delete("/api/jobs/job-1")

        assert response.status_code == 200
        data = response.json()
        assert data["soft_deleted"] is True
        assert data["affected_resume_ids"] == ["resume-7"]
        mock_jobs_coll.update_one.assert_awaited_once_with({"id": "job-1"}, {"$set": {"is_active": False}})
        mock_jobs_coll.delete_one.assert_not_called()

    @patch('app.services.job_manager.jobs_coll')
    def test_delete_other_users_job(self, mock_jobs_coll, client):
        mock_jobs_coll.find_one = AsyncMock(return_value=None)

        response = client.delete("/api/jobs/job-1")

        assert response.status_code == 404
        assert mock_jobs_coll.find_one.call_args.args[0] == {"id": "job-1", "user_id": "user-1"}

    @patch('app.services.job_manager.jobs_coll')
    def test_delete_tailored_job_always_soft(self, mock_jobs_coll, client):
        mock_jobs_coll.update_one = AsyncMock(return_value=SimpleNamespace(matched_count=1))

        response = client.delete("/api/jobs/job-1/tailored")

        assert response.status_code == 200
        assert response.json()["soft_deleted"] is True

    @patch('app.services.job_manager.jobs_coll')
    def test_database_error_is_generic_500(self, mock_jobs_coll, client):
        mock_jobs_coll.find_one = AsyncMock(side_effect=RuntimeError("socket closed on 10.0.0.5"))

        response = client.get("/api/jobs/job-1")

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "PERSISTENCE_FAILURE"
        assert "10.0.0.5" not in response.text
        assert data["details"] == {}


def test_unauthenticated_request_is_rejected():
    from fastapi import FastAPI
    from app.routers import jobs
    from app.middleware.error_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(jobs.router, prefix="/api/jobs")

    response = TestClient(app).post("/api/jobs/empty")

    assert response.status_code == 401
    assert response.json()["message"] == "User not authenticated"
