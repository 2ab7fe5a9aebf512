"""Tests for the HTTP endpoint routes."""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from blockerwatch.domain.models import BlockerCategory
from blockerwatch.endpoint.server import create_app
from blockerwatch.engine.detector import BlockerDetector

DOCKER_SIGNATURE = {
    "id": "docker-daemon",
    "name": "Docker Daemon Down",
    "category": "resource",
    "signals": ["cannot connect to the docker daemon"],
    "confidence": 0.8,
    "min_duration_ms": 0,
}


@pytest.fixture
def detector(make_detector, make_ocr, make_llm) -> BlockerDetector:
    return make_detector(
        ocr=make_ocr("Error: Compilation failed", confidence=0.9),
        llm=make_llm(BlockerCategory.BUILD_ERROR, confidence=0.9),
    )


@pytest.fixture
def client(detector: BlockerDetector) -> Iterator[TestClient]:
    with TestClient(create_app(detector)) as test_client:
        yield test_client


def _detect(client: TestClient, window: str = "VS Code") -> dict:
    response = client.post("/detect", json={"window_name": window, "activity_duration_ms": 5000})
    assert response.status_code == 200
    return response.json()


class TestBlockerRoutes:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "healthy"
        assert body["providers"]["vision"]["readiness"] == "disabled"

    def test_detect_then_list(self, client: TestClient) -> None:
        body = _detect(client)

        assert body["detected"] is True
        blocker = body["blocker"]
        assert blocker["category"] == "build_error"
        assert blocker["context"]["window_name"] == "VS Code"

        listed = client.get("/blockers").json()
        assert [b["id"] for b in listed] == [blocker["id"]]
        assert client.get(f"/blockers/{blocker['id']}").json()["id"] == blocker["id"]

    def test_detect_in_excluded_app(self, client: TestClient) -> None:
        assert _detect(client, window="Slack")["detected"] is False

    def test_unknown_blocker_is_404(self, client: TestClient) -> None:
        assert client.get("/blockers/blocker-missing").status_code == 404
        assert client.get("/blockers/blocker-missing/insights").status_code == 404

    def test_resolve_flow(self, client: TestClient) -> None:
        blocker_id = _detect(client)["blocker"]["id"]

        response = client.post(f"/blockers/{blocker_id}/resolve", json={"action": "Fixed the import"})

        assert response.json() == {"status": "ok", "id": blocker_id}
        assert client.get("/blockers").json() == []
        resolved = client.get("/blockers/resolved", params={"limit": 5}).json()
        assert resolved[0]["resolved"] is True
        assert resolved[0]["suggested_action"] == "Fixed the import"

    def test_resolve_without_body(self, client: TestClient) -> None:
        blocker_id = _detect(client)["blocker"]["id"]

        assert client.post(f"/blockers/{blocker_id}/resolve").json()["status"] == "ok"

    def test_resolve_unknown_is_ignored(self, client: TestClient) -> None:
        response = client.post("/blockers/blocker-missing/resolve")

        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_stats(self, client: TestClient) -> None:
        _detect(client)
        _detect(client)

        stats = client.get("/blockers/stats").json()

        assert stats["total"] == 2
        assert stats["by_category"] == {"build_error": 2}

    def test_insights(self, client: TestClient) -> None:
        blocker_id = _detect(client)["blocker"]["id"]

        body = client.get(f"/blockers/{blocker_id}/insights").json()

        assert body == {"id": blocker_id, "insights": "Insights for build_error"}


class TestSignatureRoutes:
    def test_list_default_catalog(self, client: TestClient) -> None:
        signatures = client.get("/signatures").json()

        assert len(signatures) == 9

    def test_add_duplicate_and_delete(self, client: TestClient) -> None:
        created = client.post("/signatures", json=DOCKER_SIGNATURE)
        assert created.status_code == 201
        assert created.json()["id"] == "docker-daemon"

        assert client.post("/signatures", json=DOCKER_SIGNATURE).status_code == 409
        assert len(client.get("/signatures").json()) == 10

        assert client.delete("/signatures/docker-daemon").json() == {"status": "ok", "id": "docker-daemon"}
        assert client.delete("/signatures/docker-daemon").status_code == 404

    def test_invalid_signature_rejected(self, client: TestClient) -> None:
        bad = dict(DOCKER_SIGNATURE, confidence=0.2)

        assert client.post("/signatures", json=bad).status_code == 422
