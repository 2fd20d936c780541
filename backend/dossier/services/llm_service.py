# backend/dossier/services/llm_service.py
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
from openai import AsyncOpenAI
from pydantic import ValidationError

from ..config import settings
from ..models import AnalysisResult, IntakeSubmission

logger = logging.getLogger("dossier.llm")


class AnalysisFailure(RuntimeError):
    """The external analysis could not produce a valid result."""


SYSTEM_PROMPT = (
    "You are an expert sales analyst. Be direct, critical, and strategic. "
    "Do not fluff the response."
)

FORMAT_PROMPT = (
    "Respond ONLY as compact JSON with keys: "
    "executiveSummary (2 sentences on the business and core problem), "
    "clientPsychology (mindset read from their writing style), "
    "operationalGapAnalysis (the broken link in acquisition, sales or fulfillment), "
    "redFlags (array of strings), greenFlags (array of strings), "
    "strategicQuestions (array of 3-5 questions for the call), "
    "closingStrategy (the pitch angle based on their desired outcome), "
    "estimatedFitScore (integer 0-100)."
)

# (section title, [(label, attribute)]) in the order the prospect answered them
PROMPT_SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("BASICS", [
        ("Company", "company_name"),
        ("Website", "website"),
        ("Reason for booking", "reason_for_booking"),
        ("Heard about us via", "how_did_you_hear"),
    ]),
    ("CURRENT FINANCIALS", [
        ("Current Revenue", "current_revenue"),
        ("Average Deal Size", "average_deal_size"),
        ("Team Size", "team_size"),
        ("Primary Service", "primary_service"),
        ("Marketing Budget", "marketing_budget"),
        ("Biggest Bottleneck", "biggest_bottleneck"),
        ("Decision Maker", "is_decision_maker"),
        ("Previous Agency Experience", "previous_agency_experience"),
    ]),
    ("PROCESS & OPERATIONS", [
        ("Client Acquisition (how they get leads)", "acquisition_source"),
        ("Sales Process (how they close)", "sales_process"),
        ("Fulfillment/Delivery (how they do the work)", "fulfillment_workflow"),
        ("Tech Stack", "current_tech_stack"),
    ]),
    ("FUTURE GOALS", [
        ("Revenue Goal", "revenue_goal"),
        ("Desired Outcome", "desired_outcome"),
        ("Desired Speed", "desired_speed"),
        ("Dream Outcome", "dream_outcome"),
        ("Magic Wand Scenario", "magic_wand_scenario"),
        ("Ready to Scale", "ready_to_scale"),
        ("Commitment Level (1-10)", "commitment_level"),
    ]),
]


def build_analysis_prompt(submission: IntakeSubmission) -> str:
    """Render the prospect's answers into the analysis prompt; empty answers are skipped."""
    lines = [
        "Act as a world-class business consultant and sales strategist.",
        "Analyze the following intake form data from a new prospect booking a discovery call.",
        "",
        f"Name: {submission.full_name or 'Unknown'}",
    ]
    for title, fields in PROMPT_SECTIONS:
        answered = [
            (label, getattr(submission, attr))
            for label, attr in fields
            if getattr(submission, attr) not in (None, "")
        ]
        if not answered:
            continue
        lines.append("")
        lines.append(f"{title}:")
        lines.extend(f"{label}: {value}" for label, value in answered)

    lines.extend([
        "",
        "Your goal is to prepare me for the sales call.",
        "Identify the gap between their current reality and desired future.",
        "Look for inconsistencies in their process descriptions.",
        'Determine if they are a "tire kicker" or a serious buyer.',
    ])
    return "\n".join(lines)


def parse_analysis(response_text: Optional[str]) -> AnalysisResult:
    """
    Parse the model output into an AnalysisResult.

    Accepts a bare JSON object or one wrapped in prose/code fences.

    Raises:
        AnalysisFailure: Empty, non-JSON or schema-violating output
    """
    if not response_text or not response_text.strip():
        raise AnalysisFailure("Empty response from LLM")

    data: Optional[Dict[str, Any]] = None
    try:
        data = json.loads(response_text)
    except json.JSONDecodeError:
        json_match = re.search(r"\{[\s\S]*\}", response_text)
        if json_match:
            try:
                data = json.loads(json_match.group(0))
            except json.JSONDecodeError:
                data = None

    if not isinstance(data, dict):
        raise AnalysisFailure("LLM response is not a JSON object")

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise AnalysisFailure(f"LLM response does not match the analysis schema: {e.error_count()} error(s)") from e


class LLMService:
    """Service producing prospect analyses through an OpenAI-compatible API."""

    def __init__(self):
        self._client: Optional[AsyncOpenAI] = None
        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize the OpenAI client; the API call is never retried by the client."""
        if not settings.openai_api_key:
            self._client = None
            return

        try:
            http_client = httpx.AsyncClient(
                verify=settings.openai_verify_ssl,
                timeout=settings.analysis_timeout,
            )
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                http_client=http_client,
                max_retries=0,
            )
        except Exception as e:
            logger.warning(f"Failed to initialize OpenAI client: {e}")
            self._client = None

    @property
    def is_available(self) -> bool:
        """Check if LLM client is available."""
        return self._client is not None

    async def analyze(self, submission: IntakeSubmission) -> AnalysisResult:
        """
        Run one analysis of a submission.

        Raises:
            AnalysisFailure: Not configured, provider/network error, or an
                unusable response
        """
        if not self._client:
            raise AnalysisFailure("LLM client is not configured")

        try:
            resp = await self._client.chat.completions.create(
                model=settings.openai_model,
                temperature=settings.openai_temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_analysis_prompt(submission)},
                    {"role": "user", "content": FORMAT_PROMPT},
                ],
            )
        except Exception as e:
            raise AnalysisFailure(f"LLM request failed: {type(e).__name__}: {e}") from e

        if not resp.choices:
            raise AnalysisFailure("LLM returned no choices")

        return parse_analysis(resp.choices[0].message.content)

    async def close(self) -> None:
        """Release the underlying HTTP connections."""
        if self._client:
            await self._client.close()


# Global LLM service instance
llm_service = LLMService()
