import asyncio
import os
import shutil
import tempfile
from pathlib import Path

import pytest


# Point the database at a throwaway SQLite file before importing app modules.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="dossier_pytest_"))

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_SESSION_DIR / 'dossier.db'}"
os.environ.setdefault("STORAGE_BACKEND", "database")

# Keep external integrations quiet during tests
os.environ["USE_CELERY"] = "false"
os.environ["RECOVER_PENDING_ON_STARTUP"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")

from dossier.models import AnalysisResult, IntakeSubmission  # noqa: E402
from dossier.services.dispatcher import AnalysisDispatcher  # noqa: E402
from dossier.services.submission_store import InMemorySubmissionStore  # noqa: E402


def pytest_sessionfinish(session, exitstatus):
    """Cleanup temporary test files after the test session."""
    shutil.rmtree(_SESSION_DIR, ignore_errors=True)


# ============================================================================
# TEST DOUBLES
# ============================================================================

class FakeAnalyzer:
    """Stands in for LLMService; counts calls and can fail or stall."""

    def __init__(self, result=None, error=None, delay=0.0, gate=None):
        self.result = result
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls = 0
        self.started = asyncio.Event()

    async def analyze(self, submission):
        self.calls += 1
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.result


class RecordingDispatcher(AnalysisDispatcher):
    """Remembers scheduled ids instead of running anything."""

    def __init__(self, fail=False):
        self.scheduled = []
        self.fail = fail

    def schedule(self, submission_id):
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.scheduled.append(submission_id)


def build_analysis(fit_score=72, **overrides):
    data = {
        "executive_summary": "Boutique agency stuck at $40k/month. Delivery depends on the founder.",
        "client_psychology": "Impatient and analytical; writes in short, direct sentences.",
        "operational_gap_analysis": "Fulfilment does not scale beyond the founder.",
        "red_flags": ["Unclear budget"],
        "green_flags": ["Decision maker", "Clear revenue goal"],
        "strategic_questions": ["What happens if nothing changes?", "Who else signs off?"],
        "closing_strategy": "Anchor on reclaiming the founder's time.",
        "estimated_fit_score": fit_score,
    }
    data.update(overrides)
    return AnalysisResult(**data)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def answers():
    """Wizard payload as the frontend sends it."""
    return {
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane@acme.com",
        "companyName": "Acme Growth",
        "website": "https://acme.example",
        "currentRevenue": "$40k/month",
        "averageDealSize": "$5k",
        "biggestBottleneck": "Delivery depends on me",
        "revenueGoal": "$100k/month",
        "desiredOutcome": "Step out of delivery",
        "commitmentLevel": 8,
    }


@pytest.fixture
def submission(answers):
    return IntakeSubmission.model_validate(answers)


@pytest.fixture
def memory_store():
    return InMemorySubmissionStore()


@pytest.fixture
def analysis():
    return build_analysis()


@pytest.fixture
def make_analysis():
    return build_analysis


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer


@pytest.fixture
def recording_dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(fail=True)
