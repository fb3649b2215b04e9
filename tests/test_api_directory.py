"""
tests/test_api_directory.py -- Integration tests for bootcamp, course and review routes.

Coverage:
  - Public reads: list/detail without auth, pagination envelope
  - Ids and page numbers outside SQLite's integer range get 400, not 500
  - Bootcamps: create 201, one per standard user, unique name, 401 without auth
  - Ownership guard: another standard user gets 403, the owner and admins pass
  - Courses: only the bootcamp owner (or admin) may add; average_cost refresh
  - Reviews: one per user per bootcamp; average_rating refresh; owner-only edits
  - Cascade: deleting a bootcamp removes its courses and reviews

Fixtures used (from conftest.py):
  - api_client: (client, token, uid) -- TestClient with an admin JWT.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.pagination import MAX_DB_INT, MAX_PAGE
from conftest import bearer, register, user_id_of

Client = tuple[TestClient, str, int]


def _publish(client: TestClient, token: str, name: str) -> dict:
    resp = client.post(
        "/api/v1/bootcamps",
        json={
            "name": name,
            "description": "Full stack web development bootcamp",
            "website": "https://example.com",
            "careers": ["Web Development", "UI/UX"],
            "housing": True,
        },
        headers=bearer(token),
    )
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()["data"]


def _add_course(client: TestClient, token: str, bootcamp_id: int, tuition: int):
    return client.post(
        f"/api/v1/bootcamps/{bootcamp_id}/courses",
        json={
            "title": "Front End Web Development",
            "description": "HTML, CSS and JavaScript",
            "weeks": 8,
            "tuition": tuition,
            "minimum_skill": "beginner",
        },
        headers=bearer(token),
    )


def _add_review(client: TestClient, token: str, bootcamp_id: int, rating: int):
    return client.post(
        f"/api/v1/bootcamps/{bootcamp_id}/reviews",
        json={"title": "Solid", "text": "Learned a lot", "rating": rating},
        headers=bearer(token),
    )


class TestBootcampRoutes:
    def test_create_bootcamp(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        token = register(client, "Publisher A", "pub-a@x.io")
        data = _publish(client, token, "Alpha Camp")
        assert data["slug"] == "alpha-camp"
        assert data["careers"] == ["Web Development", "UI/UX"]
        assert data["housing"] is True
        assert data["average_cost"] is None
        assert data["user_id"] == user_id_of(client, token)

    def test_create_requires_auth(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/bootcamps", json={"name": "Anon Camp", "description": "x", "careers": ["Business"]}
        )
        assert resp.status_code == 401

    def test_standard_user_limited_to_one_bootcamp(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        token = register(client, "Publisher B", "pub-b@x.io")
        _publish(client, token, "Beta Camp")
        resp = client.post(
            "/api/v1/bootcamps",
            json={"name": "Beta Camp Two", "description": "x", "careers": ["Business"]},
            headers=bearer(token),
        )
        assert resp.status_code == 400
        assert "has already published a bootcamp" in resp.json()["error"]

    def test_admin_may_publish_many(self, api_client: Client) -> None:
        client, token, _uid = api_client
        _publish(client, token, "Admin Camp One")
        _publish(client, token, "Admin Camp Two")

    def test_duplicate_name(self, api_client: Client) -> None:
        client, token, _uid = api_client
        _publish(client, token, "Gamma Camp")
        resp = client.post(
            "/api/v1/bootcamps",
            json={"name": "Gamma Camp", "description": "x", "careers": ["Other"]},
            headers=bearer(token),
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "A bootcamp with that name already exists"

    def test_invalid_career_rejected(self, api_client: Client) -> None:
        client, token, _uid = api_client
        resp = client.post(
            "/api/v1/bootcamps",
            json={"name": "Delta Camp", "description": "x", "careers": ["Astrology"]},
            headers=bearer(token),
        )
        assert resp.status_code == 400

    def test_public_reads(self, api_client: Client) -> None:
        client, token, _uid = api_client
        created = _publish(client, token, "Public Camp")
        listing = client.get("/api/v1/bootcamps")
        assert listing.status_code == 200
        assert listing.json()["success"] is True
        assert listing.json()["count"] >= 1
        detail = client.get(f"/api/v1/bootcamps/{created['id']}")
        assert detail.status_code == 200
        assert detail.json()["data"]["name"] == "Public Camp"

    def test_missing_bootcamp(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/bootcamps/99999")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Bootcamp not found with id of 99999"}

    def test_pagination_links(self, api_client: Client) -> None:
        client, token, _uid = api_client
        _publish(client, token, "Page Camp One")
        _publish(client, token, "Page Camp Two")
        first = client.get("/api/v1/bootcamps", params={"page": 1, "limit": 1}).json()
        assert first["count"] == 1
        assert first["pagination"]["next"] == {"page": 2, "limit": 1}
        assert "prev" not in first["pagination"]
        second = client.get("/api/v1/bootcamps", params={"page": 2, "limit": 1}).json()
        assert second["pagination"]["prev"] == {"page": 1, "limit": 1}

    def test_bad_page_param(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        assert client.get("/api/v1/bootcamps", params={"page": 0}).status_code == 400

    def test_id_beyond_integer_range_rejected(self, api_client: Client) -> None:
        client, token, _uid = api_client
        huge = 10**20
        for path in (
            f"/api/v1/bootcamps/{huge}",
            f"/api/v1/bootcamps/{huge}/courses",
            f"/api/v1/courses/{huge}",
            f"/api/v1/reviews/{huge}",
        ):
            resp = client.get(path)
            assert resp.status_code == 400, f"{path}: {resp.text}"
            assert resp.json()["success"] is False
        assert client.delete(f"/api/v1/bootcamps/{huge}", headers=bearer(token)).status_code == 400
        assert client.get(f"/api/v1/bootcamps/{MAX_DB_INT}").status_code == 404

    def test_page_beyond_integer_range_rejected(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/bootcamps", params={"page": 10**20})
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert client.get("/api/v1/courses", params={"page": MAX_PAGE + 1}).status_code == 400

        last = client.get("/api/v1/reviews", params={"page": MAX_PAGE, "limit": 100})
        assert last.status_code == 200
        assert last.json()["data"] == []


class TestOwnershipGuard:
    def test_other_user_cannot_update_or_delete(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner C", "own-c@x.io")
        intruder = register(client, "Intruder C", "int-c@x.io")
        bootcamp = _publish(client, owner, "Owned Camp")
        intruder_id = user_id_of(client, intruder)

        resp = client.put(
            f"/api/v1/bootcamps/{bootcamp['id']}", json={"description": "hijacked"}, headers=bearer(intruder)
        )
        assert resp.status_code == 403
        assert resp.json() == {
            "success": False,
            "error": f"User {intruder_id} is not authorized to update this bootcamp",
        }
        assert client.delete(f"/api/v1/bootcamps/{bootcamp['id']}", headers=bearer(intruder)).status_code == 403
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}").json()["data"]["description"] != "hijacked"

    def test_owner_can_update(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner D", "own-d@x.io")
        bootcamp = _publish(client, owner, "Renamable Camp")
        resp = client.put(f"/api/v1/bootcamps/{bootcamp['id']}", json={"name": "Renamed Camp"}, headers=bearer(owner))
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["slug"] == "renamed-camp"

    def test_admin_can_update_any(self, api_client: Client) -> None:
        client, token, _uid = api_client
        owner = register(client, "Owner E", "own-e@x.io")
        bootcamp = _publish(client, owner, "Moderated Camp")
        resp = client.put(
            f"/api/v1/bootcamps/{bootcamp['id']}", json={"job_guarantee": True}, headers=bearer(token)
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["job_guarantee"] is True


class TestCourseRoutes:
    def test_owner_adds_course_and_cost_updates(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner F", "own-f@x.io")
        bootcamp = _publish(client, owner, "Course Camp")

        first = _add_course(client, owner, bootcamp["id"], 10000)
        assert first.status_code == 201, first.text
        assert first.json()["data"]["bootcamp_id"] == bootcamp["id"]
        _add_course(client, owner, bootcamp["id"], 12001)

        detail = client.get(f"/api/v1/bootcamps/{bootcamp['id']}").json()["data"]
        assert detail["average_cost"] == 11010

        courses = client.get(f"/api/v1/bootcamps/{bootcamp['id']}/courses").json()
        assert courses["count"] == 2

    def test_non_owner_cannot_add_course(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner G", "own-g@x.io")
        other = register(client, "Other G", "oth-g@x.io")
        bootcamp = _publish(client, owner, "Closed Camp")
        resp = _add_course(client, other, bootcamp["id"], 5000)
        assert resp.status_code == 403
        assert "not authorized to add a course to this bootcamp" in resp.json()["error"]

    def test_course_for_missing_bootcamp(self, api_client: Client) -> None:
        client, token, _uid = api_client
        assert _add_course(client, token, 99999, 5000).status_code == 404

    def test_course_update_and_delete_guarded(self, api_client: Client) -> None:
        client, token, _uid = api_client
        owner = register(client, "Owner H", "own-h@x.io")
        other = register(client, "Other H", "oth-h@x.io")
        bootcamp = _publish(client, owner, "Guarded Course Camp")
        course_id = _add_course(client, owner, bootcamp["id"], 4000).json()["data"]["id"]

        assert client.put(f"/api/v1/courses/{course_id}", json={"weeks": 10}, headers=bearer(other)).status_code == 403
        resp = client.put(f"/api/v1/courses/{course_id}", json={"tuition": 6000}, headers=bearer(owner))
        assert resp.status_code == 200
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}").json()["data"]["average_cost"] == 6000

        assert client.delete(f"/api/v1/courses/{course_id}", headers=bearer(token)).status_code == 200
        assert client.get(f"/api/v1/courses/{course_id}").status_code == 404
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}").json()["data"]["average_cost"] is None


class TestReviewRoutes:
    def test_reviews_and_rating(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner I", "own-i@x.io")
        alice = register(client, "Alice I", "alice-i@x.io")
        bob = register(client, "Bob I", "bob-i@x.io")
        bootcamp = _publish(client, owner, "Rated Camp")

        assert _add_review(client, alice, bootcamp["id"], 8).status_code == 201
        assert _add_review(client, bob, bootcamp["id"], 5).status_code == 201
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}").json()["data"]["average_rating"] == 6.5
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}/reviews").json()["count"] == 2

    def test_one_review_per_user(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner J", "own-j@x.io")
        alice = register(client, "Alice J", "alice-j@x.io")
        bootcamp = _publish(client, owner, "Single Review Camp")
        _add_review(client, alice, bootcamp["id"], 9)
        resp = _add_review(client, alice, bootcamp["id"], 2)
        assert resp.status_code == 400
        assert resp.json()["error"] == "You have already reviewed this bootcamp"

    def test_rating_out_of_range(self, api_client: Client) -> None:
        client, token, _uid = api_client
        bootcamp = _publish(client, token, "Range Camp")
        assert _add_review(client, token, bootcamp["id"], 11).status_code == 400

    def test_review_edits_are_guarded(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner K", "own-k@x.io")
        alice = register(client, "Alice K", "alice-k@x.io")
        bootcamp = _publish(client, owner, "Edited Review Camp")
        review_id = _add_review(client, alice, bootcamp["id"], 4).json()["data"]["id"]

        # The bootcamp owner does not own the review
        resp = client.put(f"/api/v1/reviews/{review_id}", json={"rating": 10}, headers=bearer(owner))
        assert resp.status_code == 403

        resp = client.put(f"/api/v1/reviews/{review_id}", json={"rating": 6}, headers=bearer(alice))
        assert resp.status_code == 200
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}").json()["data"]["average_rating"] == 6.0

        assert client.delete(f"/api/v1/reviews/{review_id}", headers=bearer(alice)).status_code == 200
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}").json()["data"]["average_rating"] is None


class TestCascade:
    def test_delete_bootcamp_removes_children(self, api_client: Client) -> None:
        client, _token, _uid = api_client
        owner = register(client, "Owner L", "own-l@x.io")
        alice = register(client, "Alice L", "alice-l@x.io")
        bootcamp = _publish(client, owner, "Doomed Camp")
        course_id = _add_course(client, owner, bootcamp["id"], 3000).json()["data"]["id"]
        review_id = _add_review(client, alice, bootcamp["id"], 7).json()["data"]["id"]

        resp = client.delete(f"/api/v1/bootcamps/{bootcamp['id']}", headers=bearer(owner))
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": {}}
        assert client.get(f"/api/v1/bootcamps/{bootcamp['id']}").status_code == 404
        assert client.get(f"/api/v1/courses/{course_id}").status_code == 404
        assert client.get(f"/api/v1/reviews/{review_id}").status_code == 404
