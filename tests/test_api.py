import json

import pytest
from conftest import FakeCaseExecutor, make_case, make_prompt_target
from fastapi.testclient import TestClient

from eval_engine.api.factory import create_api
from eval_engine.api.sse import format_sse_event
from eval_engine.api.v1.endpoints import test_runs
from eval_engine.api.v1.endpoints.test_runs import get_streaming_executor
from eval_engine.services.streaming_executor import StreamingExecutor


def parse_events(body: str):
    events = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


@pytest.fixture
def fake_executor():
    return FakeCaseExecutor(response_times={"a": 10, "b": 30}, failing={"b"})


@pytest.fixture
def client(fake_executor):
    app = create_api(enable_logfire=False)
    app.dependency_overrides[get_streaming_executor] = lambda: StreamingExecutor(fake_executor)
    with TestClient(app) as test_client:
        yield test_client


def run_payload(**extra):
    payload = {
        "testCases": [
            make_case("a", tags=["smoke"]).to_payload(),
            make_case("b").to_payload(),
        ],
        "target": make_prompt_target().to_payload(),
    }
    payload.update(extra)
    return payload


def test_format_sse_event():
    assert format_sse_event("progress", {"current": 1}) == 'event: progress\ndata: {"current": 1}\n\n'


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert "providers" in body["components"]
    assert response.headers["X-Request-ID"]


def test_run_without_streaming_returns_test_run(client):
    response = client.post("/api/v1/test-runs?stream=false", json=run_payload())

    assert response.status_code == 200
    run = response.json()
    assert run["status"] == "completed"
    assert run["summary"] == {
        "total": 2,
        "passed": 1,
        "failed": 1,
        "avgResponseTime": 20,
    }
    assert [r["testCaseId"] for r in run["results"]] == ["a", "b"]


def test_run_streams_events(client):
    response = client.post("/api/v1/test-runs", json=run_payload(iterations=2))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache, no-transform"
    assert response.headers["x-accel-buffering"] == "no"

    events = parse_events(response.text)
    names = [name for name, _ in events]
    assert names[0] == "connected"
    assert names[-1] == "complete"
    assert names.count("progress") == 4
    assert names.count("result") == 4

    first_progress = next(data for name, data in events if name == "progress")
    assert first_progress["total"] == 4
    assert first_progress["testCaseName"] == "Case a"

    complete = events[-1][1]
    assert complete["aborted"] is False
    assert complete["run"]["iterations"] == 2
    assert complete["run"]["summary"]["total"] == 4
    assert complete["run"]["id"] == events[0][1]["runId"]


def test_tag_filter_selects_cases(client, fake_executor):
    response = client.post("/api/v1/test-runs?stream=false", json=run_payload(tags=["SMOKE"]))

    assert response.status_code == 200
    assert fake_executor.executed == ["a"]


def test_iterations_are_clamped(client, fake_executor):
    response = client.post(
        "/api/v1/test-runs?stream=false", json=run_payload(iterations=0, testCaseIds=["a"])
    )

    assert response.status_code == 200
    assert response.json()["summary"]["total"] == 1
    assert fake_executor.executed == ["a"]


def test_empty_selection_returns_400(client):
    response = client.post(
        "/api/v1/test-runs?stream=false", json=run_payload(testCaseIds=["missing"])
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["message"] == "No test cases match the selected IDs"
    assert error["code"] == "VALIDATION_EMPTY_SELECTION"


def test_invalid_body_returns_422(client):
    response = client.post("/api/v1/test-runs", json={"target": {"type": "ftp"}})

    assert response.status_code == 422
    assert response.json()["error"]["type"] == "ValidationError"


def test_shutdown_closes_shared_endpoint_client():
    executor = get_streaming_executor()
    http_client = executor.test_case_executor.endpoint_service._get_client()

    with TestClient(create_api(enable_logfire=False)):
        assert http_client.is_closed is False

    assert http_client.is_closed is True
    assert test_runs._streaming_executor is None
