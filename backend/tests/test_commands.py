import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dossier.client import PollTimeout, UnknownToken
from dossier.commands import init_db, poll_submission, requeue_pending


@pytest.mark.asyncio
async def test_init_db_creates_tables(tmp_path):
    assert await init_db._init(f"sqlite+aiosqlite:///{tmp_path / 'cmd.db'}") is True
    assert (tmp_path / "cmd.db").exists()


def test_requeue_pending_reports_counts(caplog):
    with patch.object(requeue_pending, "_run", AsyncMock(return_value={"requeued": 3, "processing": 1})):
        with patch.object(sys, "argv", ["requeue_pending", "--limit", "10"]):
            with caplog.at_level("INFO"):
                assert requeue_pending.main() == 0

    assert "Re-dispatched 3 pending submission(s)" in caplog.text
    assert "1 submission(s) are still processing" in caplog.text


def _patched_client(**behaviour):
    client = MagicMock()
    client.__enter__.return_value = client
    for name, value in behaviour.items():
        setattr(client, name, value)
    return client


@pytest.mark.parametrize("outcome,exit_code", [
    (MagicMock(return_value={"status": "completed", "estimatedFitScore": 72}), 0),
    (MagicMock(return_value={"status": "failed", "message": "Analysis failed."}), 1),
    (MagicMock(side_effect=UnknownToken()), 2),
    (MagicMock(side_effect=PollTimeout("pending", 120.0)), 3),
])
def test_poll_submission_exit_codes(outcome, exit_code):
    client = _patched_client(wait_for_terminal=outcome)
    with patch.object(poll_submission, "DossierClient", return_value=client):
        with patch.object(sys, "argv", ["poll_submission", "tok", "--interval", "1"]):
            assert poll_submission.main() == exit_code

    outcome.assert_called_once_with("tok", interval=1.0, max_wait=120.0)
