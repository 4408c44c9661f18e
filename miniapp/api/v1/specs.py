"""
Spec endpoints.

POST /api/v1/specs/decode - lenient decode, fix-ups, validation
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, status
from pydantic import BaseModel

from miniapp.models.spec import SpecDecodeError, decode_spec, encode_spec
from miniapp.models.validation import ValidationResult
from miniapp.services.repair import repair_spec
from miniapp.services.validator import spec_validator
from miniapp.utils.logging import get_logger, log_context

router = APIRouter()
logger = get_logger(__name__)


class DecodeResponse(BaseModel):
    spec: Dict[str, Any]
    validation: ValidationResult


def decode_or_422(payload: Dict[str, Any]):
    try:
        return decode_spec(payload)
    except SpecDecodeError as e:
        logger.warning("api.spec.decode_failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "spec_decode_failed",
                "message": str(e),
                "errors": e.errors,
            }
        )


@router.post("/specs/decode", response_model=DecodeResponse)
async def decode(payload: Dict[str, Any] = Body(...)) -> DecodeResponse:
    with log_context(operation="decode_spec"):
        spec = repair_spec(decode_or_422(payload))
        return DecodeResponse(spec=encode_spec(spec), validation=spec_validator.validate(spec))
