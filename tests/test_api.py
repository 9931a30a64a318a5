from fastapi.testclient import TestClient

from cms.cache import TypeMapCache
from cms.main import app, get_cache, get_transactions
from cms.transaction import SqlAlchemyTransactionManager

from conftest import make_session_factory


def _make_client() -> TestClient:
    transactions = SqlAlchemyTransactionManager(make_session_factory())
    cache = TypeMapCache()

    app.dependency_overrides[get_transactions] = lambda: transactions
    app.dependency_overrides[get_cache] = lambda: cache
    return TestClient(app)


def _create(client: TestClient, code: str, name: str) -> dict:
    resp = client.post("/api/v1/post-types", json={"code": code, "name": name})
    assert resp.status_code == 201
    return resp.json()["data"]


def test_health() -> None:
    client = _make_client()
    with client:
        assert client.get("/health").json() == {"status": "healthy"}


def test_post_type_crud_flow() -> None:
    client = _make_client()
    with client:
        blog = _create(client, "blog", "Blog Post")
        assert blog["id"] > 0
        assert blog["version"] == 0
        assert blog["code"] == "blog"

        get_resp = client.get(f"/api/v1/post-types/{blog['id']}")
        assert get_resp.status_code == 200
        assert get_resp.json()["data"]["uid"] == blog["uid"]

        put_resp = client.put(
            f"/api/v1/post-types/{blog['id']}", json={"version": 0, "name": "Updated Blog Post"}
        )
        assert put_resp.status_code == 200
        assert put_resp.json()["data"]["version"] == 1
        assert put_resp.json()["data"]["name"] == "Updated Blog Post"

        stale_resp = client.put(
            f"/api/v1/post-types/{blog['id']}", json={"version": 0, "name": "Stale"}
        )
        assert stale_resp.status_code == 409
        assert stale_resp.json()["error"]["code"] == "CONFLICT"

        delete_resp = client.delete(f"/api/v1/post-types/{blog['id']}")
        assert delete_resp.status_code == 204
        assert client.delete(f"/api/v1/post-types/{blog['id']}").status_code == 404
        assert client.get(f"/api/v1/post-types/{blog['id']}").status_code == 404


def test_create_rejects_bad_input() -> None:
    client = _make_client()
    with client:
        _create(client, "blog", "Blog Post")
        dup = client.post("/api/v1/post-types", json={"code": "blog", "name": "Again"})
        assert dup.status_code == 409
        assert dup.json()["error"]["message"] == "Code already exists"

        bad = client.post("/api/v1/post-types", json={"code": "Not Valid", "name": "x"})
        assert bad.status_code == 400
        assert bad.json()["error"]["message"] == "Invalid code format"
        assert "request_id" in bad.json()["meta"]


def test_list_with_filters_sorts_and_search() -> None:
    client = _make_client()
    with client:
        _create(client, "blog", "Blog Post")
        _create(client, "news", "News Article")
        _create(client, "tutorial", "Tutorial")

        resp = client.get("/api/v1/post-types", params={"filter": "code:eq:blog"})
        assert resp.status_code == 200
        assert [pt["code"] for pt in resp.json()["data"]] == ["blog"]

        resp = client.get(
            "/api/v1/post-types",
            params={"filter": ["id:between:1,1000000", "name:like:Post"]},
        )
        assert [pt["code"] for pt in resp.json()["data"]] == ["blog"]

        resp = client.get(
            "/api/v1/post-types", params={"sort": "code:desc", "limit": 2, "offset": 0}
        )
        body = resp.json()
        assert [pt["code"] for pt in body["data"]] == ["tutorial", "news"]
        assert body["meta"]["page"] == {"limit": 2, "offset": 0, "total": 3}

        resp = client.get("/api/v1/post-types", params={"q": "article"})
        assert [pt["code"] for pt in resp.json()["data"]] == ["news"]


def test_list_rejects_bad_filters() -> None:
    client = _make_client()
    with client:
        for text in ("code:approx:blog", "colour:eq:red", "code:gt:b", "@rating:eq:5"):
            resp = client.get("/api/v1/post-types", params={"filter": text})
            assert resp.status_code == 400, text
            assert resp.json()["error"]["code"] == "BAD_REQUEST"


def test_list_filters_on_uid() -> None:
    client = _make_client()
    with client:
        blog = _create(client, "blog", "Blog Post")
        news = _create(client, "news", "News Article")
        _create(client, "tutorial", "Tutorial")

        resp = client.get("/api/v1/post-types", params={"filter": f"uid:eq:{blog['uid']}"})
        assert resp.status_code == 200
        assert [pt["code"] for pt in resp.json()["data"]] == ["blog"]

        resp = client.get(
            "/api/v1/post-types",
            params={"filter": f"uid:in:{blog['uid']},{news['uid']}", "sort": "code"},
        )
        assert resp.status_code == 200
        assert [pt["code"] for pt in resp.json()["data"]] == ["blog", "news"]

        resp = client.get("/api/v1/post-types", params={"filter": "uid:eq:garbage"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"


def test_update_rejects_null_for_required_field() -> None:
    client = _make_client()
    with client:
        blog = _create(client, "blog", "Blog Post")
        resp = client.put(f"/api/v1/post-types/{blog['id']}", json={"version": 0, "name": None})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["errors"][0]["field"] == "name"
        stored = client.get(f"/api/v1/post-types/{blog['id']}").json()["data"]
        assert (stored["version"], stored["name"]) == (0, "Blog Post")
