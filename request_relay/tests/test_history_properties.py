"""
Property-based tests for the per-user history log and saved requests.
"""

import pytest
from hypothesis import given, strategies as st, settings

from request_relay.tests.support import TEST_DATABASE_URL, TestSessionLocal, get_test_db, make_client as get_test_client
from request_relay.models.history import HistoryEntry
from request_relay.schemas.postman import PostmanRequest, ResponseSummary
from request_relay.services import history_service


def as_user(uid: str) -> dict:
    return {"X-User-Id": uid}


def history_payload(url: str, status: int = 200, method: str = "GET") -> dict:
    return {
        "request": {"method": method, "url": url},
        "responseSummary": {"status": status, "ok": 200 <= status < 300, "timeMs": 5},
    }


# Strategies for generating history data
method_strategy = st.sampled_from(["GET", "POST", "PUT", "PATCH", "DELETE"])

path_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_"),
    min_size=1,
    max_size=20
).map(lambda s: f"/api/mock/{s}")

status_strategy = st.sampled_from([200, 201, 204, 302, 400, 401, 403, 404, 500, 502])

uid_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=1,
    max_size=16
)


class TestHistoryOrdering:
    """History is listed newest first."""

    @given(paths=st.lists(path_strategy, min_size=2, max_size=6))
    @settings(max_examples=20, deadline=None)
    def test_history_list_is_newest_first(self, paths: list[str]):
        with get_test_client() as client:
            for path in paths:
                response = client.post("/api/postman/history", json=history_payload(path), headers=as_user("u1"))
                assert response.status_code == 201

            response = client.get("/api/postman/history", headers=as_user("u1"))
            assert response.status_code == 200
            items = response.json()["items"]

            assert [item["request"]["url"] for item in items] == list(reversed(paths))

    @given(method=method_strategy, status=status_strategy, path=path_strategy)
    @settings(max_examples=20, deadline=None)
    def test_history_entry_keeps_request_and_summary(self, method: str, status: int, path: str):
        with get_test_client() as client:
            created = client.post(
                "/api/postman/history",
                json=history_payload(path, status=status, method=method),
                headers=as_user("u1"),
            ).json()

            assert created["id"]
            assert created["createdAt"]
            assert created["request"]["method"] == method
            assert created["request"]["url"] == path
            assert created["request"]["auth"] == {"type": "none"}
            assert created["responseSummary"] == {"status": status, "ok": 200 <= status < 300, "timeMs": 5}


class TestHistoryCap:
    """History keeps at most 50 entries per user."""

    def test_oldest_entries_are_evicted(self):
        with get_test_db() as db:
            for i in range(55):
                history_service.add_history(
                    db, "u1", PostmanRequest(url=f"/api/mock/{i}"), ResponseSummary(status=200, ok=True, time_ms=1)
                )

            items = history_service.list_history(db, "u1")
            assert len(items) == 50
            assert items[0].request["url"] == "/api/mock/54"
            assert items[-1].request["url"] == "/api/mock/5"
            assert history_service.count_history(db, "u1") == 50

    def test_cap_is_per_user(self):
        with get_test_db() as db:
            for i in range(3):
                history_service.add_history(
                    db, "u2", PostmanRequest(url="/api/mock/users"), ResponseSummary(status=200, ok=True, time_ms=1)
                )
            for i in range(52):
                history_service.add_history(
                    db, "u1", PostmanRequest(url="/api/mock/users"), ResponseSummary(status=200, ok=True, time_ms=1)
                )
            assert history_service.count_history(db, "u2") == 3

    def test_same_request_is_recorded_twice(self):
        with get_test_client() as client:
            for _ in range(2):
                client.post("/api/postman/history", json=history_payload("/api/mock/users"), headers=as_user("u1"))
            body = client.get("/api/postman/history", headers=as_user("u1")).json()
            assert body["total"] == 2

    def test_total_counts_stored_entries_not_listed_page(self):
        with get_test_client() as client:
            db = TestSessionLocal()
            try:
                for i in range(55):
                    history_service.add_history(
                        db, "u1", PostmanRequest(url=f"/api/mock/{i}"),
                        ResponseSummary(status=200, ok=True, time_ms=1), limit=100,
                    )
            finally:
                db.close()

            body = client.get("/api/postman/history", headers=as_user("u1")).json()
            assert len(body["items"]) == 50
            assert body["total"] == 55


class TestClearHistory:

    def test_clear_removes_everything_for_caller_only(self):
        with get_test_client() as client:
            for path in ("/api/mock/a", "/api/mock/b"):
                client.post("/api/postman/history", json=history_payload(path), headers=as_user("u1"))
            client.post("/api/postman/history", json=history_payload("/api/mock/c"), headers=as_user("u2"))

            response = client.delete("/api/postman/history", headers=as_user("u1"))
            assert response.status_code == 204

            assert client.get("/api/postman/history", headers=as_user("u1")).json() == {"items": [], "total": 0}
            assert client.get("/api/postman/history", headers=as_user("u2")).json()["total"] == 1

    def test_clear_leaves_no_hidden_entries(self):
        with get_test_db() as db:
            for i in range(60):
                history_service.add_history(
                    db, "u1", PostmanRequest(url="/api/mock/users"), ResponseSummary(status=200, ok=True, time_ms=1)
                )
            assert history_service.clear_history(db, "u1") == 50
            assert db.query(HistoryEntry).filter(HistoryEntry.uid == "u1").count() == 0


class TestUserIsolation:

    @given(uid_a=uid_strategy, uid_b=uid_strategy)
    @settings(max_examples=20, deadline=None)
    def test_users_never_see_each_other(self, uid_a: str, uid_b: str):
        if uid_a == uid_b:
            return
        with get_test_client() as client:
            client.post("/api/postman/history", json=history_payload("/api/mock/a"), headers=as_user(uid_a))
            client.post(
                "/api/postman/saved",
                json={"name": "mine", "request": {"url": "/api/mock/a"}},
                headers=as_user(uid_a),
            )

            assert client.get("/api/postman/history", headers=as_user(uid_b)).json()["total"] == 0
            assert client.get("/api/postman/saved", headers=as_user(uid_b)).json()["total"] == 0

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/postman/history"),
        ("delete", "/api/postman/history"),
        ("get", "/api/postman/saved"),
        ("delete", "/api/postman/saved/abc"),
    ])
    def test_identity_is_required(self, method: str, path: str):
        with get_test_client() as client:
            response = getattr(client, method)(path)
            assert response.status_code == 401
            assert response.json()["errorCode"] == "UNAUTHORIZED"

    def test_overlong_identity_is_rejected(self):
        with get_test_client() as client:
            response = client.get("/api/postman/history", headers=as_user("x" * 129))
            assert response.status_code == 401


class TestSavedRequests:

    def test_duplicate_names_create_separate_entries(self):
        with get_test_client() as client:
            ids = []
            for url in ("/api/mock/a", "/api/mock/b"):
                response = client.post(
                    "/api/postman/saved",
                    json={"name": "Users", "request": {"method": "POST", "url": url, "bodyText": "{}"}},
                    headers=as_user("u1"),
                )
                assert response.status_code == 201
                ids.append(response.json()["id"])

            assert ids[0] != ids[1]
            body = client.get("/api/postman/saved", headers=as_user("u1")).json()
            assert body["total"] == 2
            assert [item["name"] for item in body["items"]] == ["Users", "Users"]
            # Most recently updated first
            assert body["items"][0]["request"]["url"] == "/api/mock/b"

    def test_saved_request_keeps_auth_variant(self):
        request = {
            "method": "GET",
            "url": "/api/mock/apikey/query",
            "auth": {"type": "apikey", "keyName": "api_key", "keyValue": "LIBYA123", "in": "query"},
        }
        with get_test_client() as client:
            saved = client.post(
                "/api/postman/saved", json={"name": "Key", "request": request}, headers=as_user("u1")
            ).json()
            assert saved["request"]["auth"] == request["auth"]

    def test_blank_name_is_rejected(self):
        with get_test_client() as client:
            response = client.post(
                "/api/postman/saved", json={"name": "", "request": {"url": "/api/mock/a"}}, headers=as_user("u1")
            )
            assert response.status_code == 422
            assert response.json()["errorCode"] == "VALIDATION_ERROR"

    def test_delete_saved(self):
        with get_test_client() as client:
            saved_id = client.post(
                "/api/postman/saved", json={"name": "x", "request": {"url": "/api/mock/a"}}, headers=as_user("u1")
            ).json()["id"]

            assert client.delete(f"/api/postman/saved/{saved_id}", headers=as_user("u1")).status_code == 204
            assert client.get("/api/postman/saved", headers=as_user("u1")).json()["total"] == 0

    def test_cannot_delete_another_users_entry(self):
        with get_test_client() as client:
            saved_id = client.post(
                "/api/postman/saved", json={"name": "x", "request": {"url": "/api/mock/a"}}, headers=as_user("u1")
            ).json()["id"]

            response = client.delete(f"/api/postman/saved/{saved_id}", headers=as_user("u2"))
            assert response.status_code == 404
            assert saved_id in response.json()["error"]
            assert client.get("/api/postman/saved", headers=as_user("u1")).json()["total"] == 1


def test_app_engine_uses_the_test_database():
    from request_relay.database import DATABASE_URL, engine

    assert DATABASE_URL == TEST_DATABASE_URL
    assert str(engine.url) == TEST_DATABASE_URL
