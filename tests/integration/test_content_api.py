"""Integration tests for the content management endpoints."""

import uuid

from httpx import AsyncClient

NOTICES = "/api/v1/notices"
PAPERS = "/api/v1/research-papers"


async def create_notice(client: AsyncClient, headers, **extra):
    body = {"title": "Exam schedule", "description": "Midterms start Monday"}
    body.update(extra)
    response = await client.post(NOTICES, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def create_paper(client: AsyncClient, headers, **extra):
    body = {"title": "Graph neural networks for crop yield", "authors": ["A. Rahman"]}
    body.update(extra)
    response = await client.post(PAPERS, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestNoticeManagement:

    async def test_admin_creates_draft(self, client: AsyncClient, admin, auth_headers):
        notice = await create_notice(client, auth_headers(admin), is_pinned=True)

        assert notice["status"] == "draft"
        assert notice["created_by"] == str(admin.user_id)
        assert notice["is_pinned"] is True
        assert notice["published_at"] is None

    async def test_teacher_cannot_create_notice(self, client: AsyncClient, teacher, auth_headers):
        response = await client.post(NOTICES, json={"title": "Nope"}, headers=auth_headers(teacher))
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_anonymous_gets_401(self, client: AsyncClient):
        response = await client.post(NOTICES, json={"title": "Nope"})
        assert response.status_code == 401

    async def test_blank_title_is_rejected(self, client: AsyncClient, admin, auth_headers):
        response = await client.post(NOTICES, json={"title": ""}, headers=auth_headers(admin))
        assert response.status_code == 422

    async def test_admin_edits_and_deletes(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)

        response = await client.patch(f"{NOTICES}/{notice['id']}", json={"title": "Exam schedule v2"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Exam schedule v2"
        assert response.json()["description"] == "Midterms start Monday"

        response = await client.delete(f"{NOTICES}/{notice['id']}", headers=headers)
        assert response.status_code == 200

        response = await client.get(f"{NOTICES}/{notice['id']}", headers=headers)
        assert response.status_code == 404

    async def test_null_for_required_field_is_422(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)

        response = await client.patch(f"{NOTICES}/{notice['id']}", json={"is_pinned": None}, headers=headers)
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"
        assert response.json()["field"] == "is_pinned"

    async def test_unknown_id_is_404(self, client: AsyncClient, admin, auth_headers):
        response = await client.get(f"{NOTICES}/{uuid.uuid4()}", headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_list_filters_by_status(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        first = await create_notice(client, headers, title="First")
        await create_notice(client, headers, title="Second")
        await client.post(f"{NOTICES}/{first['id']}/submit", headers=headers)

        response = await client.get(NOTICES, params={"status": "pending"}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["title"] == "First"

        response = await client.get(NOTICES, headers=headers)
        assert response.json()["total"] == 2


class TestNoticeWorkflow:

    async def test_submit_approve_archive(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)
        url = f"{NOTICES}/{notice['id']}"

        response = await client.post(f"{url}/submit", headers=headers)
        assert response.json()["status"] == "pending"

        response = await client.post(f"{url}/approve", headers=headers)
        assert response.status_code == 200
        published = response.json()
        assert published["status"] == "published"
        assert published["published_at"] is not None

        response = await client.post(f"{url}/archive", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "archived"
        assert response.json()["published_at"] == published["published_at"]

    async def test_approve_twice_is_idempotent(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)
        url = f"{NOTICES}/{notice['id']}"
        await client.post(f"{url}/submit", headers=headers)

        first = (await client.post(f"{url}/approve", headers=headers)).json()
        response = await client.post(f"{url}/approve", headers=headers)

        assert response.status_code == 200
        assert response.json()["published_at"] == first["published_at"]

    async def test_approving_a_draft_is_invalid(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)

        response = await client.post(f"{NOTICES}/{notice['id']}/approve", headers=headers)
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_transition"

    async def test_reject_requires_notes(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)
        url = f"{NOTICES}/{notice['id']}"
        await client.post(f"{url}/submit", headers=headers)

        response = await client.post(f"{url}/reject", headers=headers)
        assert response.status_code == 422
        assert response.json()["field"] == "review_notes"

        response = await client.post(f"{url}/reject", json={"review_notes": "Wrong date"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "archived"
        assert response.json()["review_notes"] == "Wrong date"

    async def test_archived_is_terminal(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)
        url = f"{NOTICES}/{notice['id']}"
        await client.post(f"{url}/submit", headers=headers)
        await client.post(f"{url}/reject", json={"review_notes": "Duplicate"}, headers=headers)

        for action in ("submit", "approve"):
            response = await client.post(f"{url}/{action}", headers=headers)
            assert response.status_code == 409, action

    async def test_history_records_each_transition(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        notice = await create_notice(client, headers)
        url = f"{NOTICES}/{notice['id']}"
        await client.post(f"{url}/submit", headers=headers)
        await client.post(f"{url}/reject", json={"review_notes": "Typo in title"}, headers=headers)

        response = await client.get(f"{url}/history", headers=headers)
        assert response.status_code == 200
        trail = sorted(response.json(), key=lambda change: change["to_status"])
        assert [(c["from_status"], c["to_status"]) for c in trail] == [
            ("pending", "archived"),
            ("draft", "pending"),
        ]
        assert trail[0]["review_notes"] == "Typo in title"
        assert trail[0]["operation"] == "reject"
        assert trail[0]["actor_id"] == str(admin.user_id)


class TestResearchPapers:

    async def test_teacher_creates_and_submits_own_paper(self, client: AsyncClient, teacher, auth_headers):
        headers = auth_headers(teacher)
        paper = await create_paper(client, headers)
        assert paper["submitted_by"] == str(teacher.user_id)
        assert paper["status"] == "draft"

        response = await client.post(f"{PAPERS}/{paper['id']}/submit", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert response.json()["submitted_at"] is not None

    async def test_resubmitting_pending_paper_is_409(self, client: AsyncClient, teacher, auth_headers):
        headers = auth_headers(teacher)
        paper = await create_paper(client, headers)
        await client.post(f"{PAPERS}/{paper['id']}/submit", headers=headers)

        response = await client.post(f"{PAPERS}/{paper['id']}/submit", headers=headers)
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_transition"

    async def test_teacher_cannot_approve(self, client: AsyncClient, teacher, auth_headers):
        headers = auth_headers(teacher)
        paper = await create_paper(client, headers)
        await client.post(f"{PAPERS}/{paper['id']}/submit", headers=headers)

        response = await client.post(f"{PAPERS}/{paper['id']}/approve", headers=headers)
        assert response.status_code == 403

    async def test_teacher_cannot_reject_even_with_notes(self, client: AsyncClient, teacher, auth_headers):
        headers = auth_headers(teacher)
        paper = await create_paper(client, headers)
        await client.post(f"{PAPERS}/{paper['id']}/submit", headers=headers)

        response = await client.post(f"{PAPERS}/{paper['id']}/reject", json={"review_notes": "x"}, headers=headers)
        assert response.status_code == 403

    async def test_teacher_sees_only_own_papers(
        self, client: AsyncClient, teacher, other_teacher, auth_headers,
    ):
        mine = await create_paper(client, auth_headers(teacher), title="Mine")
        theirs = await create_paper(client, auth_headers(other_teacher), title="Theirs")

        response = await client.get(PAPERS, headers=auth_headers(teacher))
        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [mine["id"]]

        response = await client.get(f"{PAPERS}/{theirs['id']}", headers=auth_headers(teacher))
        assert response.status_code == 403

    async def test_teacher_cannot_edit_colleagues_paper(
        self, client: AsyncClient, teacher, other_teacher, auth_headers,
    ):
        theirs = await create_paper(client, auth_headers(other_teacher))
        response = await client.patch(
            f"{PAPERS}/{theirs['id']}", json={"title": "Hijacked"}, headers=auth_headers(teacher),
        )
        assert response.status_code == 403

    async def test_published_paper_is_locked_for_author(
        self, client: AsyncClient, admin, teacher, auth_headers,
    ):
        paper = await create_paper(client, auth_headers(teacher))
        url = f"{PAPERS}/{paper['id']}"
        await client.post(f"{url}/submit", headers=auth_headers(teacher))

        response = await client.post(f"{url}/approve", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["reviewed_by"] == str(admin.user_id)
        assert response.json()["approved_at"] is not None

        response = await client.patch(url, json={"title": "Revised"}, headers=auth_headers(teacher))
        assert response.status_code == 403

    async def test_student_cannot_list_papers(self, client: AsyncClient, student, auth_headers):
        response = await client.get(PAPERS, headers=auth_headers(student))
        assert response.status_code == 403


class TestNoticeCategories:

    async def test_admin_creates_category(self, client: AsyncClient, admin, auth_headers):
        response = await client.post(
            "/api/v1/notice-categories",
            json={"name": "Exam Office"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201, response.text
        assert response.json()["slug"] == "exam-office"
        assert response.json()["is_active"] is True

    async def test_duplicate_slug_conflicts(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        await client.post("/api/v1/notice-categories", json={"name": "Exams"}, headers=headers)
        response = await client.post("/api/v1/notice-categories", json={"name": "EXAMS"}, headers=headers)
        assert response.status_code == 409

    async def test_teacher_cannot_create_category(self, client: AsyncClient, teacher, auth_headers):
        response = await client.post(
            "/api/v1/notice-categories", json={"name": "Mine"}, headers=auth_headers(teacher),
        )
        assert response.status_code == 403
