"""
Tests for the token-scoped admin endpoints.

The dispatcher is replaced by a recorder; analyses are driven explicitly
through AnalysisWorker so every status is observed deterministically.
"""

import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from dossier.config import settings
from dossier.dependencies import get_dispatcher, get_store
from dossier.main import app
from dossier.services.analysis_worker import AnalysisWorker
from dossier.services.llm_service import AnalysisFailure
from dossier.services.status_protocol import FAILED_MESSAGE


@pytest.fixture
def client(memory_store, recording_dispatcher):
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_dispatcher] = lambda: recording_dispatcher
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def submit(client, answers):
    def _submit():
        return client.post("/api/submissions", json=answers).json()
    return _submit


@pytest.fixture
def run_analysis(memory_store, fake_analyzer):
    def _run(submission_id, **analyzer_kwargs):
        worker = AnalysisWorker(memory_store, fake_analyzer(**analyzer_kwargs), timeout=5)
        return asyncio.run(worker.process(submission_id))
    return _run


class TestUnknownToken:

    @pytest.mark.parametrize("suffix", ["", "/status", "/dossier"])
    def test_unknown_token_is_404(self, client, suffix):
        response = client.get(f"/api/admin/not-a-real-token{suffix}")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"


class TestStatusEndpoint:

    def test_completed_status_has_fit_score(self, client, submit, run_analysis, make_analysis):
        receipt = submit()
        run_analysis(receipt["id"], result=make_analysis(fit_score=72))

        response = client.get(f"/api/admin/{receipt['token']}/status")

        assert response.json() == {"status": "completed", "estimatedFitScore": 72}

    def test_failed_status_is_generic(self, client, submit, run_analysis):
        receipt = submit()
        run_analysis(receipt["id"], error=AnalysisFailure("401 invalid api key sk-live-123"))

        response = client.get(f"/api/admin/{receipt['token']}/status")

        assert response.json() == {"status": "failed", "message": FAILED_MESSAGE}
        assert "sk-live" not in response.text

    def test_status_is_stable_after_completion(self, client, submit, run_analysis, analysis):
        receipt = submit()
        run_analysis(receipt["id"], result=analysis)

        first = client.get(f"/api/admin/{receipt['token']}/status").json()
        run_analysis(receipt["id"], error=AnalysisFailure("late duplicate"))
        second = client.get(f"/api/admin/{receipt['token']}/status").json()

        assert first == second


class TestFullView:

    def test_pending_view(self, client, submit):
        receipt = submit()

        data = client.get(f"/api/admin/{receipt['token']}").json()

        assert data["status"] == "pending"
        assert data["analysis"] is None
        assert data["message"] is None
        assert data["submission"]["firstName"] == "Jane"
        assert data["submission"]["commitmentLevel"] == 8
        assert "createdAt" in data and "updatedAt" in data

    def test_completed_view(self, client, submit, run_analysis, analysis):
        receipt = submit()
        run_analysis(receipt["id"], result=analysis)

        data = client.get(f"/api/admin/{receipt['token']}").json()

        assert data["status"] == "completed"
        assert data["analysis"]["estimatedFitScore"] == 72
        assert data["analysis"]["greenFlags"] == ["Decision maker", "Clear revenue goal"]
        assert data["analysis"]["closingStrategy"] == analysis.closing_strategy

    def test_failed_view_has_no_analysis(self, client, submit, run_analysis):
        receipt = submit()
        run_analysis(receipt["id"], error=AnalysisFailure("boom"))

        data = client.get(f"/api/admin/{receipt['token']}").json()

        assert data["status"] == "failed"
        assert data["analysis"] is None
        assert data["message"] == FAILED_MESSAGE


class TestDossierEndpoint:

    def test_pending_dossier_is_conflict(self, client, submit):
        receipt = submit()

        response = client.get(f"/api/admin/{receipt['token']}/dossier")

        assert response.status_code == 409
        assert response.json()["error"] == "HTTP 409"

    def test_completed_dossier_is_markdown(self, client, submit, run_analysis, analysis):
        receipt = submit()
        run_analysis(receipt["id"], result=analysis)

        response = client.get(f"/api/admin/{receipt['token']}/dossier")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert response.text.startswith("# Pre-Call Dossier")


class TestStatusStream:

    def test_unknown_token_closes_with_4404(self, client):
        with client.websocket_connect("/api/admin/not-a-real-token/ws") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
        assert exc_info.value.code == 4404

    def test_terminal_status_is_sent_then_closed(self, client, submit, run_analysis, make_analysis):
        receipt = submit()
        run_analysis(receipt["id"], result=make_analysis(fit_score=55))

        with client.websocket_connect(f"/api/admin/{receipt['token']}/ws") as ws:
            assert ws.receive_json() == {"status": "completed", "estimatedFitScore": 55}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
        assert exc_info.value.code == 1000

    def test_stream_gives_up_at_max_wait(self, client, submit):
        receipt = submit()

        with patch.object(settings, "status_stream_max_wait", 0):
            with client.websocket_connect(f"/api/admin/{receipt['token']}/ws") as ws:
                assert ws.receive_json() == {"status": "pending"}
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    ws.receive_json()
        assert exc_info.value.code == 1001


class TestTokenIsolation:

    def test_tokens_only_see_their_own_record(self, client, answers, run_analysis, make_analysis):
        first = client.post("/api/submissions", json=answers).json()
        second = client.post("/api/submissions", json={**answers, "firstName": "Omar"}).json()
        run_analysis(first["id"], result=make_analysis(fit_score=90))

        first_view = client.get(f"/api/admin/{first['token']}").json()
        second_view = client.get(f"/api/admin/{second['token']}").json()

        assert first_view["status"] == "completed"
        assert second_view["status"] == "pending"
        assert second_view["submission"]["firstName"] == "Omar"
        assert second_view["analysis"] is None
