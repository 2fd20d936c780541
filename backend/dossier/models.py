# ============================================================================
# Intake Dossier - Data Models
# ============================================================================
"""
Pydantic models shared by the services and the HTTP API.

Wire format is camelCase JSON (matching the intake wizard); Python attributes
are snake_case. Models accept either spelling on input.

Models:
    IntakeSubmission: The prospect's questionnaire answers (opaque to the core)
    AnalysisResult: Structured analysis returned by the LLM
    SubmissionRecord: Unit of lifecycle state kept by the submission store
    SubmissionReceipt: Response to a successful intake
    AdminView / StatusSnapshot: Responses of the admin polling API
    HealthStatus / ErrorResponse: System responses
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .services.status_protocol import SubmissionStatus


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting both spellings."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# INTAKE
# ============================================================================

class IntakeSubmission(CamelModel):
    """
    Questionnaire answers collected by the intake wizard.

    Every field is treated as an opaque string (or enum value) by the core.
    Fields not declared here are kept verbatim so nothing the client sent is
    lost.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow", frozen=True)

    # Step 1: Basics
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    website: str = ""
    company_name: str = ""
    reason_for_booking: str = ""
    how_did_you_hear: str = ""

    # Step 2: Current reality
    current_revenue: str = ""
    team_size: str = ""
    primary_service: str = ""
    average_deal_size: str = ""
    marketing_budget: str = ""
    biggest_bottleneck: str = ""
    is_decision_maker: str = ""
    previous_agency_experience: str = ""

    # Step 3: Process & operations
    acquisition_source: str = ""
    sales_process: str = ""
    fulfillment_workflow: str = ""
    current_tech_stack: str = ""

    # Step 4: Vision
    revenue_goal: str = ""
    desired_outcome: str = ""
    desired_speed: str = ""
    dream_outcome: str = ""
    magic_wand_scenario: str = ""
    ready_to_scale: str = ""
    commitment_level: Optional[int] = Field(default=None, ge=1, le=10)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()

    def to_wire(self) -> Dict[str, Any]:
        """camelCase dict including preserved extra fields."""
        return self.model_dump(by_alias=True, mode="json")


class AnalysisResult(CamelModel):
    """Structured pre-call analysis of a prospect."""

    executive_summary: str = Field(description="Two-sentence summary of the business and core problem")
    client_psychology: str = Field(description="Mindset read from the prospect's writing style")
    operational_gap_analysis: str = Field(description="The broken link in acquisition, sales or fulfilment")
    red_flags: List[str] = Field(default_factory=list, description="Risks or reasons to disqualify")
    green_flags: List[str] = Field(default_factory=list, description="Indicators of a high-value client")
    strategic_questions: List[str] = Field(default_factory=list, description="Questions for the call")
    closing_strategy: str = Field(description="Angle to pitch the solution")
    estimated_fit_score: int = Field(ge=0, le=100, description="Fit score 0-100")


# ============================================================================
# LIFECYCLE
# ============================================================================

class SubmissionRecord(CamelModel):
    """
    Lifecycle state of one submission.

    `analysis` is present if and only if `status` is completed; the stores
    enforce this on every write.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    token: str
    submission: IntakeSubmission
    status: SubmissionStatus = SubmissionStatus.PENDING
    analysis: Optional[AnalysisResult] = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# API RESPONSES
# ============================================================================

class SubmissionReceipt(CamelModel):
    """Returned to the submitter; the token is the only key to the results."""

    id: str
    token: str
    admin_url: str


class StatusSnapshot(CamelModel):
    """Lightweight poll response."""

    status: SubmissionStatus
    estimated_fit_score: Optional[int] = None
    message: Optional[str] = None


class AdminView(CamelModel):
    """Full admin view of a submission."""

    submission: Dict[str, Any]
    analysis: Optional[AnalysisResult] = None
    status: SubmissionStatus
    created_at: datetime
    updated_at: datetime
    message: Optional[str] = None


class HealthStatus(CamelModel):
    """System health summary."""

    status: str
    timestamp: datetime
    version: str
    llm_configured: bool
    storage_backend: str
    database_connected: Optional[bool] = None


class ErrorResponse(BaseModel):
    """
    Standard error response model for API errors.

    Attributes:
        error: Error category or type
        detail: Detailed error message (never provider or stack trace text)
        timestamp: When the error occurred
    """

    error: str
    detail: Optional[str] = None
    timestamp: datetime
