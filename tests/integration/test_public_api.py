"""Integration tests for the anonymous read endpoints."""

from datetime import datetime, timedelta, timezone

from httpx import AsyncClient

PUBLIC = "/api/v1/public"


async def publish(client: AsyncClient, headers, path: str, body: dict) -> dict:
    response = await client.post(f"/api/v1/{path}", json=body, headers=headers)
    assert response.status_code == 201, response.text
    record_id = response.json()["id"]
    await client.post(f"/api/v1/{path}/{record_id}/submit", headers=headers)
    response = await client.post(f"/api/v1/{path}/{record_id}/approve", headers=headers)
    assert response.json()["status"] == "published"
    return response.json()


class TestPublicNotices:

    async def test_only_published_are_listed(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        published = await publish(client, headers, "notices", {"title": "Library hours"})
        await client.post("/api/v1/notices", json={"title": "Still a draft"}, headers=headers)

        response = await client.get(f"{PUBLIC}/notices")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["page_size"] == 10
        assert [item["id"] for item in data["items"]] == [published["id"]]

    async def test_public_response_hides_lifecycle_columns(self, client: AsyncClient, admin, auth_headers):
        await publish(client, auth_headers(admin), "notices", {"title": "Library hours"})

        item = (await client.get(f"{PUBLIC}/notices")).json()["items"][0]
        assert "status" not in item
        assert "review_notes" not in item
        assert "created_by" not in item

    async def test_draft_is_not_found(self, client: AsyncClient, admin, auth_headers):
        response = await client.post("/api/v1/notices", json={"title": "Secret"}, headers=auth_headers(admin))
        draft_id = response.json()["id"]

        response = await client.get(f"{PUBLIC}/notices/{draft_id}")
        assert response.status_code == 404

    async def test_expired_notice_is_hidden(self, client: AsyncClient, admin, auth_headers):
        expired_at = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        expired = await publish(client, auth_headers(admin), "notices", {"title": "Old", "expires_at": expired_at})

        assert (await client.get(f"{PUBLIC}/notices")).json()["total"] == 0
        assert (await client.get(f"{PUBLIC}/notices/{expired['id']}")).status_code == 404

    async def test_expiry_with_utc_offset_is_honoured(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        now = datetime.now(timezone.utc)
        east = timezone(timedelta(hours=5))
        west = timezone(timedelta(hours=-5))
        expired = await publish(client, headers, "notices", {
            "title": "Expired two hours ago",
            "expires_at": (now - timedelta(hours=2)).astimezone(east).isoformat(),
        })
        current = await publish(client, headers, "notices", {
            "title": "Expires in two hours",
            "expires_at": (now + timedelta(hours=2)).astimezone(west).isoformat(),
        })

        data = (await client.get(f"{PUBLIC}/notices")).json()
        assert [item["id"] for item in data["items"]] == [current["id"]]
        assert (await client.get(f"{PUBLIC}/notices/{expired['id']}")).status_code == 404
        assert (await client.get(f"{PUBLIC}/notices/{current['id']}")).status_code == 200

    async def test_reading_counts_a_view(self, client: AsyncClient, admin, auth_headers):
        notice = await publish(client, auth_headers(admin), "notices", {"title": "Convocation"})
        url = f"{PUBLIC}/notices/{notice['id']}"

        assert (await client.get(url)).json()["views"] == 1
        assert (await client.get(url)).json()["views"] == 2

        # Listing does not count
        item = (await client.get(f"{PUBLIC}/notices")).json()["items"][0]
        assert item["views"] == 2

    async def test_pinned_first(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        await publish(client, headers, "notices", {"title": "Pinned", "is_pinned": True})
        await publish(client, headers, "notices", {"title": "Newer"})

        titles = [item["title"] for item in (await client.get(f"{PUBLIC}/notices")).json()["items"]]
        assert titles == ["Pinned", "Newer"]

    async def test_search_and_pagination(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        for n in range(3):
            await publish(client, headers, "notices", {"title": f"Scholarship round {n}"})
        await publish(client, headers, "notices", {"title": "Sports day"})

        data = (await client.get(f"{PUBLIC}/notices", params={"search": "scholarship", "page_size": 2})).json()
        assert data["total"] == 3
        assert len(data["items"]) == 2
        assert data["has_more"] is True

    async def test_category_filter(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        category = (await client.post(
            "/api/v1/notice-categories", json={"name": "Exams"}, headers=headers,
        )).json()
        await publish(client, headers, "notices", {"title": "Exam routine", "category_id": category["id"]})
        await publish(client, headers, "notices", {"title": "Other"})

        data = (await client.get(f"{PUBLIC}/notices", params={"category": "exams"})).json()
        assert [item["title"] for item in data["items"]] == ["Exam routine"]

        data = (await client.get(f"{PUBLIC}/notices", params={"category": "no-such-category"})).json()
        assert data["total"] == 0

    async def test_categories_listing(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        await client.post("/api/v1/notice-categories", json={"name": "Exams", "display_order": 2}, headers=headers)
        await client.post("/api/v1/notice-categories", json={"name": "Admissions", "display_order": 1}, headers=headers)

        response = await client.get(f"{PUBLIC}/notice-categories")
        assert response.status_code == 200
        assert [c["slug"] for c in response.json()] == ["admissions", "exams"]


class TestPublicOtherKinds:

    async def test_featured_news(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        await publish(client, headers, "news", {"title": "Robotics team wins", "is_featured": True})
        await publish(client, headers, "news", {"title": "Cafeteria renovated"})

        data = (await client.get(f"{PUBLIC}/news", params={"featured": "true"})).json()
        assert [item["title"] for item in data["items"]] == ["Robotics team wins"]
        assert data["items"][0]["slug"] == "robotics-team-wins"

    async def test_events_in_date_order(self, client: AsyncClient, admin, auth_headers):
        headers = auth_headers(admin)
        await publish(client, headers, "events", {"title": "Later", "event_date": "2026-12-01T10:00:00Z"})
        await publish(client, headers, "events", {"title": "Sooner", "event_date": "2026-11-01T10:00:00Z"})

        titles = [item["title"] for item in (await client.get(f"{PUBLIC}/events")).json()["items"]]
        assert titles == ["Sooner", "Later"]

    async def test_events_have_no_categories(self, client: AsyncClient):
        response = await client.get(f"{PUBLIC}/events", params={"category": "x"})
        assert response.status_code == 422

    async def test_pending_paper_is_hidden(self, client: AsyncClient, teacher, auth_headers):
        headers = auth_headers(teacher)
        paper = (await client.post(
            "/api/v1/research-papers", json={"title": "Under review"}, headers=headers,
        )).json()
        await client.post(f"/api/v1/research-papers/{paper['id']}/submit", headers=headers)

        assert (await client.get(f"{PUBLIC}/research-papers")).json()["total"] == 0
        assert (await client.get(f"{PUBLIC}/research-papers/{paper['id']}")).status_code == 404
