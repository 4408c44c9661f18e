"""
Design endpoints: validate, repair, compile to a spec, compile to markup.

POST /api/v1/designs/validate
POST /api/v1/designs/repair
POST /api/v1/designs/compile
POST /api/v1/designs/markup
POST /api/v1/designs/markup/debug
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from miniapp.models.design import AppDesign
from miniapp.models.spec import encode_spec
from miniapp.models.validation import ValidationResult
from miniapp.services.compiler.dsl_adapter import design_to_spec
from miniapp.services.compiler.markup import GeneratedApp, markup_compiler, render_document
from miniapp.services.repair import debug_generated_markup, improve_design, repair_design
from miniapp.services.validator import design_validator, spec_validator
from miniapp.utils.logging import get_logger, log_context

router = APIRouter()
logger = get_logger(__name__)


class RepairRequest(BaseModel):
    design: AppDesign
    improve: bool = False
    suggestions: List[str] = Field(default_factory=list)


class RepairResponse(BaseModel):
    design: Dict[str, Any]
    before: ValidationResult
    after: ValidationResult


class CompileRequest(BaseModel):
    design: AppDesign
    owner_id: Optional[str] = None


class CompileResponse(BaseModel):
    spec: Dict[str, Any]
    validation: ValidationResult


class MarkupResponse(BaseModel):
    app: GeneratedApp
    document: Optional[str] = None


class MarkupDebugRequest(BaseModel):
    app: GeneratedApp
    runtime_error: str = ""


def _dump(design: AppDesign) -> Dict[str, Any]:
    return design.model_dump(mode="json", by_alias=True)


@router.post("/designs/validate", response_model=ValidationResult)
async def validate_design(design: AppDesign) -> ValidationResult:
    with log_context(operation="validate_design"):
        return design_validator.validate(design)


@router.post("/designs/repair", response_model=RepairResponse)
async def repair(request: RepairRequest) -> RepairResponse:
    design = request.design
    with log_context(operation="repair_design"):
        before = design_validator.validate(design)
        if request.improve:
            fixed = improve_design(design, request.suggestions)
        else:
            fixed = repair_design(design, before)
        after = design_validator.validate(fixed)

        logger.info(
            "api.design.repaired",
            extra={"design_id": design.id, "before": before.score, "after": after.score}
        )
        return RepairResponse(design=_dump(fixed), before=before, after=after)


@router.post("/designs/compile", response_model=CompileResponse)
async def compile_design(request: CompileRequest) -> CompileResponse:
    with log_context(operation="compile_design"):
        spec = design_to_spec.convert(request.design, owner_id=request.owner_id)
        return CompileResponse(spec=encode_spec(spec), validation=spec_validator.validate(spec))


@router.post("/designs/markup", response_model=MarkupResponse)
async def compile_markup(design: AppDesign, document: bool = False) -> MarkupResponse:
    with log_context(operation="compile_markup"):
        app = markup_compiler.generate_app(design)
        return MarkupResponse(app=app, document=render_document(app) if document else None)


@router.post("/designs/markup/debug", response_model=GeneratedApp)
async def debug_markup(request: MarkupDebugRequest) -> GeneratedApp:
    return debug_generated_markup(request.app, request.runtime_error)
