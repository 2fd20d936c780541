# backend/dossier/api/v1/routers/submissions.py
from fastapi import APIRouter, Depends

from ....dependencies import get_intake_service
from ....models import IntakeSubmission, SubmissionReceipt
from ....services.intake_service import IntakeService

router = APIRouter()


@router.post("/submissions", response_model=SubmissionReceipt, tags=["Intake"])
async def create_submission(
    payload: IntakeSubmission,
    intake: IntakeService = Depends(get_intake_service),
):
    """
    Accept a completed intake questionnaire.

    The record is stored as pending and its analysis is scheduled in the
    background; the response carries the access token and admin link right
    away. Missing mandatory fields yield 400 and nothing is stored.
    """
    return await intake.submit(payload)
