from datetime import datetime

import pytest

from dossier.models import SubmissionRecord
from dossier.services.dossier_service import DossierNotReady, render_dossier
from dossier.services.status_protocol import FAILED_MESSAGE, SubmissionStatus


def _record(submission, status, analysis=None):
    now = datetime(2024, 5, 1, 12, 0, 0)
    return SubmissionRecord(
        id="sub-1",
        token="tok",
        submission=submission,
        status=status,
        analysis=analysis,
        created_at=now,
        updated_at=now,
    )


def test_render_completed_dossier(submission, analysis):
    markdown = render_dossier(_record(submission, SubmissionStatus.COMPLETED, analysis))

    assert markdown.startswith("# Pre-Call Dossier")
    assert "**Candidate:** Jane Doe (Acme Growth)" in markdown
    assert "**72** / 100" in markdown
    assert "- Unclear budget" in markdown
    assert "- Decision maker" in markdown
    assert "1. What happens if nothing changes?" in markdown
    assert "2. Who else signs off?" in markdown
    assert "- Commitment: 8/10" in markdown
    assert '"firstName": "Jane"' in markdown


def test_empty_flags_render_placeholder(submission, make_analysis):
    analysis = make_analysis(red_flags=[], green_flags=[])

    markdown = render_dossier(_record(submission, SubmissionStatus.COMPLETED, analysis))

    assert markdown.count("- None detected.") == 2


@pytest.mark.parametrize("status", [SubmissionStatus.PENDING, SubmissionStatus.PROCESSING])
def test_unfinished_record_is_not_ready(submission, status):
    with pytest.raises(DossierNotReady) as exc_info:
        render_dossier(_record(submission, status))
    assert exc_info.value.status == status


def test_failed_record_uses_generic_message(submission):
    with pytest.raises(DossierNotReady, match=FAILED_MESSAGE):
        render_dossier(_record(submission, SubmissionStatus.FAILED))
