"""
app/services/kyc_wizard_service.py

Purpose: KYC upload wizard progression

- Reads and persists the wizard step on the user document (`kycWizard`)
- Validates step transitions
- Uploads the ID document and selfie through the user service
- Refuses uploads once the user is verified
"""

from datetime import datetime
from typing import Optional, Dict, Any

from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_collection
from app.flow.states import KycStep, is_valid_transition, get_step_metadata, get_progress_message
from app.services import user_service
from utils.constants import (
    USERS_COLLECTION,
    KYC_STATUS_PENDING,
    KYC_VERIFIED_STATUSES,
    KYC_ID_DOCUMENT_TYPES,
    KYC_SELFIE_TYPE,
    ERROR_SELECT_ID_DOCUMENT,
    ERROR_SELECT_SELFIE,
)
from utils.validation_utils import require_choice

logger = get_logger(__name__)


async def _load_user(user_id: str) -> Dict[str, Any]:
    user = await get_collection(USERS_COLLECTION).find_one({"_id": user_id})
    if not user:
        raise ResourceNotFoundError("User not found", details={"user_id": user_id})
    return user


def _current_step(user: Dict[str, Any]) -> KycStep:
    wizard = user.get("kycWizard") or {}
    try:
        return KycStep(wizard.get("step", KycStep.UPLOAD_ID.value))
    except ValueError:
        return KycStep.UPLOAD_ID


def _is_verified(user: Dict[str, Any]) -> bool:
    return user.get("kycStatus") in KYC_VERIFIED_STATUSES


async def update_wizard_step(
    user_id: str,
    new_step: KycStep,
    validate_transition: bool = True,
    **fields: Any
) -> bool:
    """
    Moves the wizard to a new step.

    Args:
        user_id: User ID
        new_step: Target step
        validate_transition: Whether to enforce transition rules
        **fields: Extra wizard fields to store (e.g. idDocumentId)

    Raises:
        ValidationError: If the transition is not allowed
    """
    with LogContext(user_id=user_id):
        user = await _load_user(user_id)
        current = _current_step(user)

        if validate_transition and current != new_step and not is_valid_transition(current, new_step):
            logger.warning(
                f"Invalid wizard transition attempted: {current.value} -> {new_step.value}",
                extra={"user_id": user_id}
            )
            raise ValidationError(
                f"Invalid KYC step transition: {current.value} -> {new_step.value}",
                details={"from": current.value, "to": new_step.value}
            )

        update = {
            "kycWizard.step": new_step.value,
            "kycWizard.updatedAt": datetime.utcnow(),
        }
        for key, value in fields.items():
            update[f"kycWizard.{key}"] = value

        result = await get_collection(USERS_COLLECTION).update_one({"_id": user_id}, {"$set": update})

        logger.info(f"KYC wizard moved: {current.value} -> {new_step.value}", extra={"user_id": user_id})
        return result.modified_count > 0


async def get_wizard_state(user_id: str) -> Dict[str, Any]:
    """
    Returns the wizard view for a user.

    Returns:
        Dict with step, step metadata, progress, KYC status, verified flag
        and the user's KYC documents
    """
    user = await _load_user(user_id)
    step = _current_step(user)
    metadata = get_step_metadata(step)

    return {
        "step": step.value,
        "display_name": metadata.display_name,
        "description": metadata.description,
        "progress": get_progress_message(step),
        "kyc_status": user.get("kycStatus") or KYC_STATUS_PENDING,
        "verified": _is_verified(user),
        "documents": await user_service.get_kyc_documents(user_id),
    }


async def _guard_upload(user_id: str, expected: KycStep) -> None:
    user = await _load_user(user_id)

    if _is_verified(user):
        raise ValidationError("KYC is already verified", details={"kyc_status": user.get("kycStatus")})

    step = _current_step(user)
    if step != expected:
        raise ValidationError(
            f"KYC wizard is at {step.value}, expected {expected.value}",
            details={"step": step.value}
        )


async def submit_id_document(
    user_id: str,
    document_type: str,
    content: Optional[bytes],
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Step 1: upload the identity document, then advance to the selfie step.
    """
    if not content:
        raise ValidationError(ERROR_SELECT_ID_DOCUMENT)
    require_choice(document_type, KYC_ID_DOCUMENT_TYPES, "document type")

    await _guard_upload(user_id, KycStep.UPLOAD_ID)

    uploaded = await user_service.upload_kyc_document(
        user_id, document_type, content, filename, content_type, metadata
    )
    await update_wizard_step(user_id, KycStep.UPLOAD_SELFIE, idDocumentId=uploaded["document_id"])

    return await get_wizard_state(user_id)


async def submit_selfie(
    user_id: str,
    content: Optional[bytes],
    filename: Optional[str] = None,
    content_type: Optional[str] = None
) -> Dict[str, Any]:
    """
    Step 2: upload the selfie and move to confirmation.
    """
    if not content:
        raise ValidationError(ERROR_SELECT_SELFIE)

    await _guard_upload(user_id, KycStep.UPLOAD_SELFIE)

    uploaded = await user_service.upload_kyc_document(
        user_id, KYC_SELFIE_TYPE, content, filename, content_type, {}
    )
    await update_wizard_step(
        user_id,
        KycStep.CONFIRMATION,
        selfieDocumentId=uploaded["document_id"],
        submittedAt=datetime.utcnow()
    )

    return await get_wizard_state(user_id)


async def reset_wizard(user_id: str) -> Dict[str, Any]:
    """
    Returns the wizard to the first step so documents can be resubmitted.
    """
    await update_wizard_step(user_id, KycStep.UPLOAD_ID, validate_transition=False)
    logger.info("KYC wizard reset", extra={"user_id": user_id})
    return await get_wizard_state(user_id)
