import json

import httpx

from verbavox.primary import ErrorKind, PrimaryStoreError, RestPrimaryStore, classify_error, is_soft_error


def _store(handler):
    return RestPrimaryStore("https://db.example.com", api_key="secret", transport=httpx.MockTransport(handler))


def test_classify_schema_errors():
    assert classify_error(PrimaryStoreError("42P01", 'relation "exercise_results" does not exist')) is ErrorKind.SCHEMA_MISSING
    assert classify_error(PrimaryStoreError("PGRST116", "JSON object requested, multiple (or no) rows returned")) is ErrorKind.SCHEMA_MISSING
    assert classify_error(PrimaryStoreError("22P02", "invalid input syntax for type uuid")) is ErrorKind.SCHEMA_MISSING
    assert classify_error(PrimaryStoreError(None, "table does not exist")) is ErrorKind.SCHEMA_MISSING


def test_classify_permission_errors():
    assert classify_error(PrimaryStoreError("42501", "permission denied for table")) is ErrorKind.PERMISSION_DENIED
    assert classify_error(PrimaryStoreError("403", "Forbidden")) is ErrorKind.PERMISSION_DENIED
    assert classify_error(
        PrimaryStoreError(None, "new row violates row-level security policy")
    ) is ErrorKind.PERMISSION_DENIED


def test_classify_unknown_errors():
    assert classify_error(PrimaryStoreError("500", "Internal Server Error")) is ErrorKind.UNKNOWN
    assert classify_error(RuntimeError("connection reset")) is ErrorKind.UNKNOWN
    assert not is_soft_error(PrimaryStoreError(None, "timeout"))
    assert is_soft_error(PrimaryStoreError("42P01", "missing"))


def test_insert_posts_record():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(201)

    _store(handler).insert("exercise_results", {"user_id": "alice", "accuracy": 90})
    assert seen["url"] == "https://db.example.com/rest/v1/exercise_results"
    assert seen["body"] == {"user_id": "alice", "accuracy": 90}
    assert seen["auth"] == "Bearer secret"


def test_select_builds_filters():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[{"id": 1}])

    rows = _store(handler).select("exercise_results", {"user_id": "alice"}, order="completed_at desc", limit=50)
    assert rows == [{"id": 1}]
    assert seen["params"] == {
        "select": "*",
        "user_id": "eq.alice",
        "order": "completed_at.desc",
        "limit": "50",
    }


def test_error_body_is_parsed():
    def handler(request):
        return httpx.Response(404, json={"code": "42P01", "message": 'relation "x" does not exist'})

    try:
        _store(handler).insert("x", {})
    except PrimaryStoreError as exc:
        assert exc.code == "42P01"
        assert classify_error(exc) is ErrorKind.SCHEMA_MISSING
    else:
        raise AssertionError("Expected PrimaryStoreError")


def test_transport_failure_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("no route to host", request=request)

    try:
        _store(handler).select("exercises")
    except PrimaryStoreError as exc:
        assert exc.code is None
        assert classify_error(exc) is ErrorKind.UNKNOWN
    else:
        raise AssertionError("Expected PrimaryStoreError")
