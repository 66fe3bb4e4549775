"""
API endpoint tests for ScriptSentries.
"""
import io

import pytest
from fastapi import status

from conftest import llm_response, risk_payload

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def as_user(user) -> dict[str, str]:
    return {"X-User-Id": user.id}


@pytest.fixture
def scanned(test_client, project, users, sample_pdf_content, mock_llm_client):
    """A script scanned by alice with one finding per page."""
    mock_llm_client.chat.completions.create.return_value = llm_response(
        {"risks": [risk_payload("Coca-Cola")]}
    )
    response = test_client.post(
        "/scripts/scan",
        files={"file": ("midnight.pdf", io.BytesIO(sample_pdf_content), "application/pdf")},
        data={"project_id": project.id},
        headers=as_user(users["alice"])
    )
    assert response.status_code == status.HTTP_200_OK
    return response.json()


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check_returns_ok(self, test_client):
        """Test that health check returns healthy status."""
        response = test_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.json()["name"] == "ScriptSentries API"


class TestUsersEndpoint:
    """Tests for the user registry."""

    def test_register_and_search(self, test_client):
        response = test_client.post("/users", json={"username": "frank", "email": "frank@studio.test"})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["id"].startswith("usr-")

        found = test_client.get("/users/search", params={"q": "fra"}).json()
        assert [u["username"] for u in found] == ["frank"]

    def test_duplicate_username(self, test_client, users):
        response = test_client.post("/users", json={"username": "Alice", "email": "a2@studio.test"})

        assert response.status_code == status.HTTP_409_CONFLICT


class TestProjectsEndpoint:
    """Tests for project workspace endpoints."""

    def test_create_project(self, test_client, users):
        response = test_client.post(
            "/projects",
            json={
                "name": "Night Shift",
                "genre": "Drama",
                "members": [{"user_id": users["bob"].id, "role": "ANALYST"}]
            },
            headers=as_user(users["alice"])
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["created_by"] == users["alice"].id
        assert {m["role"] for m in data["members"]} == {"ATTORNEY", "ANALYST"}

    def test_missing_user_header(self, test_client):
        response = test_client.post("/projects", json={"name": "Anonymous"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_non_member_gets_403(self, test_client, project, users):
        response = test_client.get(f"/projects/{project.id}", headers=as_user(users["mallory"]))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "NotAMember"

    def test_viewer_cannot_update(self, test_client, project, users):
        response = test_client.patch(
            f"/projects/{project.id}",
            json={"notes": "changed"},
            headers=as_user(users["erin"])
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "Forbidden"

    def test_cannot_remove_creator(self, test_client, project, users):
        response = test_client.delete(
            f"/projects/{project.id}/members/{users['alice'].id}",
            headers=as_user(users["bob"])
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "CannotRemoveCreator"

    def test_add_existing_member(self, test_client, project, users):
        response = test_client.post(
            f"/projects/{project.id}/members",
            json={"user_id": users["bob"].id, "role": "VIEWER"},
            headers=as_user(users["alice"])
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_delete_project_hides_it(self, test_client, project, users):
        response = test_client.delete(f"/projects/{project.id}", headers=as_user(users["alice"]))
        assert response.status_code == status.HTTP_200_OK

        response = test_client.get(f"/projects/{project.id}", headers=as_user(users["alice"]))
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert test_client.get("/projects", headers=as_user(users["alice"])).json() == []


class TestScanEndpoint:
    """Tests for script scanning."""

    def test_scan_returns_findings(self, scanned, project, scratch_dir):
        assert scanned["status"] == "COMPLETE"
        assert scanned["project_id"] == project.id
        assert scanned["version_name"] == "Draft 1"
        assert scanned["risk_count"] == 2
        assert len(scanned["risks"]) == 2
        assert scanned["all_pages_failed"] is False
        assert list(scratch_dir.iterdir()) == []

    def test_scan_non_pdf_file(self, test_client, project, users):
        """Test that non-PDF files are rejected."""
        response = test_client.post(
            "/scripts/scan",
            files={"file": ("notes.txt", io.BytesIO(b"Not a PDF"), "text/plain")},
            data={"project_id": project.id},
            headers=as_user(users["alice"])
        )

        assert response.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE

    def test_scan_empty_file(self, test_client, project, users):
        """Test that empty files are rejected."""
        response = test_client.post(
            "/scripts/scan",
            files={"file": ("empty.pdf", io.BytesIO(b""), "application/pdf")},
            data={"project_id": project.id},
            headers=as_user(users["alice"])
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "ValidationFailed"

    def test_viewer_cannot_scan(self, test_client, project, users, sample_pdf_content):
        response = test_client.post(
            "/scripts/scan",
            files={"file": ("midnight.pdf", io.BytesIO(sample_pdf_content), "application/pdf")},
            data={"project_id": project.id},
            headers=as_user(users["erin"])
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_project(self, test_client, users, sample_pdf_content):
        response = test_client.post(
            "/scripts/scan",
            files={"file": ("midnight.pdf", io.BytesIO(sample_pdf_content), "application/pdf")},
            data={"project_id": "prj-missing"},
            headers=as_user(users["alice"])
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestScriptsEndpoint:
    """Tests for reviewing, versioning and exporting scanned scripts."""

    def test_get_script(self, test_client, scanned, users):
        response = test_client.get(f"/scripts/{scanned['id']}", headers=as_user(users["erin"]))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["risks"]) == 2

    def test_recent_activity(self, test_client, scanned, users):
        response = test_client.get("/scripts", headers=as_user(users["bob"]))

        assert [d["id"] for d in response.json()] == [scanned["id"]]
        assert test_client.get("/scripts", headers=as_user(users["mallory"])).json() == []

    def test_timeline(self, test_client, scanned, project, users):
        response = test_client.get(f"/projects/{project.id}/timeline", headers=as_user(users["alice"]))

        data = response.json()
        assert data["total_versions"] == 1
        assert data["total_high_risks"] == 2

    def test_rename(self, test_client, scanned, users):
        response = test_client.patch(
            f"/scripts/{scanned['id']}/rename",
            json={"version_name": "Blue Revision"},
            headers=as_user(users["carol"])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["version_name"] == "Blue Revision"

    def test_review_finding(self, test_client, scanned, users):
        risk_id = scanned["risks"][0]["id"]

        response = test_client.patch(
            f"/risks/{risk_id}",
            json={"status": "CLEARED", "is_redacted": True},
            headers=as_user(users["bob"])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "CLEARED"
        assert response.json()["is_redacted"] is True

    def test_export(self, test_client, scanned, users):
        response = test_client.get(f"/scripts/{scanned['id']}/export", headers=as_user(users["erin"]))

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == XLSX
        assert "ScriptSentries_midnight_" in response.headers["content-disposition"]
        assert response.content[:2] == b"PK"

    def test_delete_script(self, test_client, scanned, users):
        response = test_client.delete(f"/scripts/{scanned['id']}", headers=as_user(users["bob"]))
        assert response.status_code == status.HTTP_200_OK

        response = test_client.get(f"/scripts/{scanned['id']}", headers=as_user(users["bob"]))
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestCollaborationEndpoint:
    """Tests for comments and notifications."""

    def test_comment_with_mention(self, test_client, scanned, users):
        risk_id = scanned["risks"][0]["id"]

        response = test_client.post(
            "/collab/comments",
            json={"risk_id": risk_id, "text": "@bob can you clear this?"},
            headers=as_user(users["alice"])
        )
        assert response.status_code == status.HTTP_201_CREATED

        unread = test_client.get("/collab/notifications/unread-count", headers=as_user(users["bob"]))
        assert unread.json() == {"unread": 1}

        test_client.post("/collab/notifications/mark-read", headers=as_user(users["bob"]))
        unread = test_client.get("/collab/notifications/unread-count", headers=as_user(users["bob"]))
        assert unread.json() == {"unread": 0}

        comments = test_client.get(
            f"/collab/comments/{risk_id}", headers=as_user(users["erin"])
        ).json()
        assert [c["text"] for c in comments] == ["@bob can you clear this?"]

        outsider = test_client.get(
            f"/collab/comments/{risk_id}", headers=as_user(users["mallory"])
        )
        assert outsider.status_code == status.HTTP_403_FORBIDDEN
        assert outsider.json()["error"] == "NotAMember"

    def test_blank_comment_rejected(self, test_client, scanned, users):
        response = test_client.post(
            "/collab/comments",
            json={"risk_id": scanned["risks"][0]["id"], "text": "   "},
            headers=as_user(users["alice"])
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestCORSHeaders:
    """Tests for CORS configuration."""

    def test_cors_headers_present(self, test_client):
        """Test that CORS headers are present."""
        response = test_client.options(
            "/health",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET"
            }
        )

        # CORS should allow the request
        assert response.status_code in [status.HTTP_200_OK, status.HTTP_204_NO_CONTENT]


class TestErrorHandling:
    """Tests for error handling."""

    def test_404_for_unknown_route(self, test_client):
        """Test that unknown routes return 404."""
        response = test_client.get("/unknown/route/here")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_method_not_allowed(self, test_client):
        """Test that wrong HTTP methods are rejected."""
        response = test_client.delete("/health")

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
