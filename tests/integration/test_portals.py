"""Integration tests for the role portals: login pages, guarded dashboards, logout."""

import pytest
from httpx import AsyncClient

from portal.kernel.models.user import UserRole

PASSWORD = "SecurePass123"


@pytest.fixture
def sign_in_cookie(client: AsyncClient, settings, jwt_manager):
    """Put a session cookie for the given Session on the client."""

    def _set(session) -> None:
        token, _ = jwt_manager.create_access_token(session.user_id)
        client.cookies.set(settings.session_cookie_name, token)

    return _set


class TestLoginPages:

    @pytest.mark.parametrize("portal", ["admin", "teacher", "student"])
    async def test_login_page_for_visitors(self, client: AsyncClient, portal):
        response = await client.get(f"/{portal}/login")
        assert response.status_code == 200
        assert response.json() == {"portal": portal, "login_action": f"/{portal}/login"}

    async def test_signed_in_user_skips_login_page(self, client: AsyncClient, teacher, sign_in_cookie):
        sign_in_cookie(teacher)
        response = await client.get("/admin/login")
        assert response.status_code == 303
        assert response.headers["location"] == "/teacher/dashboard"

    async def test_login_sets_cookie_and_redirects(self, client: AsyncClient, student, settings):
        response = await client.post(
            "/student/login",
            json={"email": student.email, "password": PASSWORD},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/student/dashboard"
        assert settings.session_cookie_name in response.cookies

        response = await client.get("/student/dashboard")
        assert response.status_code == 200

    async def test_wrong_portal_lands_on_own_dashboard(self, client: AsyncClient, teacher):
        response = await client.post(
            "/student/login",
            json={"email": teacher.email, "password": PASSWORD},
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/teacher/dashboard"

    async def test_bad_credentials(self, client: AsyncClient, admin):
        response = await client.post(
            "/admin/login",
            json={"email": admin.email, "password": "WrongPass999"},
        )
        assert response.status_code == 401


class TestGuardedDashboards:

    @pytest.mark.parametrize("portal", ["admin", "teacher", "student"])
    async def test_no_session_goes_to_login(self, client: AsyncClient, portal):
        response = await client.get(f"/{portal}/dashboard")
        assert response.status_code == 303
        assert response.headers["location"] == f"/{portal}/login"

    async def test_student_sent_to_own_dashboard(self, client: AsyncClient, student, sign_in_cookie):
        sign_in_cookie(student)
        for portal in ("admin", "teacher"):
            response = await client.get(f"/{portal}/dashboard")
            assert response.status_code == 303
            assert response.headers["location"] == "/student/dashboard"

    async def test_deactivated_account_goes_to_login(self, client: AsyncClient, make_account, sign_in_cookie):
        session = await make_account("gone@university.edu", UserRole.TEACHER, is_active=False)
        sign_in_cookie(session)
        response = await client.get("/teacher/dashboard")
        assert response.status_code == 303
        assert response.headers["location"] == "/teacher/login"

    async def test_admin_dashboard_counts_pending(
        self, client: AsyncClient, admin, teacher, auth_headers, sign_in_cookie,
    ):
        paper = (await client.post(
            "/api/v1/research-papers", json={"title": "Pending paper"}, headers=auth_headers(teacher),
        )).json()
        await client.post(f"/api/v1/research-papers/{paper['id']}/submit", headers=auth_headers(teacher))

        sign_in_cookie(admin)
        response = await client.get("/admin/dashboard")
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["role"] == "admin"
        assert data["pending_review"]["research_paper"] == 1
        assert data["pending_review"]["notice"] == 0

    async def test_teacher_dashboard(self, client: AsyncClient, teacher, auth_headers, sign_in_cookie):
        await client.post("/api/v1/research-papers", json={"title": "Draft"}, headers=auth_headers(teacher))

        sign_in_cookie(teacher)
        data = (await client.get("/teacher/dashboard")).json()
        assert data["research_papers"]["draft"] == 1
        assert data["research_papers"]["published"] == 0
        assert data["can_submit_papers"] is True
        assert data["capabilities"]["research_paper"] == [
            "create", "editOwnDraft", "submitForReview", "viewPrivate", "viewPublic",
        ]
        assert "approve" not in data["capabilities"]["notice"]

    async def test_student_dashboard_shows_public_notices(
        self, client: AsyncClient, admin, student, auth_headers, sign_in_cookie,
    ):
        headers = auth_headers(admin)
        notice = (await client.post("/api/v1/notices", json={"title": "Registration open"}, headers=headers)).json()
        await client.post(f"/api/v1/notices/{notice['id']}/submit", headers=headers)
        await client.post(f"/api/v1/notices/{notice['id']}/approve", headers=headers)
        await client.post("/api/v1/notices", json={"title": "Draft only"}, headers=headers)

        sign_in_cookie(student)
        data = (await client.get("/student/dashboard")).json()
        assert data["notice_count"] == 1
        assert data["latest_notices"][0]["title"] == "Registration open"
        assert data["capabilities"]["notice"] == ["viewPublic"]


class TestLogout:

    async def test_logout_clears_cookie(self, client: AsyncClient, teacher, sign_in_cookie, settings):
        sign_in_cookie(teacher)
        response = await client.post("/logout")
        assert response.status_code == 303
        assert response.headers["location"] == "/teacher/login"
        assert settings.session_cookie_name in response.headers["set-cookie"]

        client.cookies.clear()
        response = await client.get("/teacher/dashboard")
        assert response.headers["location"] == "/teacher/login"

    async def test_logout_without_session(self, client: AsyncClient):
        response = await client.post("/logout")
        assert response.status_code == 303
        assert response.headers["location"] == "/"
