"""
app/flow/states.py

Purpose: Defines the KYC upload wizard steps

- Enum for each step (UPLOAD_ID, UPLOAD_SELFIE, CONFIRMATION)
- Single source of truth for wizard progression
- Step transition validation
- Metadata for each step (display name, expected document)
"""

from enum import Enum
from typing import Dict, List, Optional
from dataclasses import dataclass


class KycStep(str, Enum):
    """
    Steps of the KYC upload wizard. Progression is linear.
    """

    UPLOAD_ID = "UPLOAD_ID"
    UPLOAD_SELFIE = "UPLOAD_SELFIE"
    CONFIRMATION = "CONFIRMATION"


@dataclass
class StepMetadata:
    """
    Metadata associated with each wizard step.
    """
    name: KycStep
    display_name: str
    step_number: int
    total_steps: int = 3
    expected_document: Optional[str] = None  # "id" or "selfie"
    requires_upload: bool = True
    description: str = ""


STEP_METADATA: Dict[KycStep, StepMetadata] = {
    KycStep.UPLOAD_ID: StepMetadata(
        name=KycStep.UPLOAD_ID,
        display_name="Upload ID",
        step_number=1,
        expected_document="id",
        description="Upload a passport, ID card or driver's license"
    ),
    KycStep.UPLOAD_SELFIE: StepMetadata(
        name=KycStep.UPLOAD_SELFIE,
        display_name="Upload Selfie",
        step_number=2,
        expected_document="selfie",
        description="Upload a selfie photo"
    ),
    KycStep.CONFIRMATION: StepMetadata(
        name=KycStep.CONFIRMATION,
        display_name="Confirmation",
        step_number=3,
        requires_upload=False,
        description="Documents submitted and awaiting review"
    ),
}


# Valid step transitions - no skipping ahead
STEP_TRANSITIONS: Dict[KycStep, List[KycStep]] = {
    KycStep.UPLOAD_ID: [
        KycStep.UPLOAD_SELFIE,
    ],
    KycStep.UPLOAD_SELFIE: [
        KycStep.CONFIRMATION,
        KycStep.UPLOAD_ID,  # Reset
    ],
    KycStep.CONFIRMATION: [
        KycStep.UPLOAD_ID,  # Resubmit after rejection
    ],
}


def is_valid_transition(from_step: KycStep, to_step: KycStep) -> bool:
    """
    Checks if a step transition is valid.

    Args:
        from_step: Current step
        to_step: Target step

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_step in STEP_TRANSITIONS.get(from_step, [])


def get_step_metadata(step: KycStep) -> StepMetadata:
    """
    Retrieves metadata for a given step.
    """
    return STEP_METADATA[step]


def get_progress_message(step: KycStep) -> str:
    """
    Generates a progress message for the current step (e.g. "Step 2 of 3").
    """
    metadata = get_step_metadata(step)
    return f"Step {metadata.step_number} of {metadata.total_steps}"
