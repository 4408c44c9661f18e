"""
miniapp/llm/heuristic_provider.py
Offline spec generator backed by the local design builder.
"""
from typing import Sequence

from miniapp.llm.base import (
    BaseSpecGenerator,
    GenerationError,
    GenerationErrorKind,
    LLMMessage,
    LLMProvider,
)
from miniapp.models.design import AppDesign
from miniapp.models.spec import Spec
from miniapp.services.compiler.dsl_adapter import design_to_spec
from miniapp.services.local_builder import local_design_builder, recognize_intent, requirement_parser
from miniapp.services.repair import repair_spec
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)


class HeuristicSpecGenerator(BaseSpecGenerator):
    """Never calls out; used when no API key is set or the remote call fails"""

    provider = LLMProvider.HEURISTIC

    def build_design(self, description: str) -> AppDesign:
        if not description or not description.strip():
            raise GenerationError(GenerationErrorKind.EMPTY_INPUT)

        intent = recognize_intent(description)
        logger.info(
            "🛡️ heuristic.generation.started",
            extra={"description_length": len(description), "intent": intent.summary}
        )
        # chat and edit requests still get a prototype built from their text
        requirements = intent.requirements or requirement_parser.parse_requirements(description)
        design = local_design_builder.build_design(description, requirements)

        logger.info(
            "✅ heuristic.generation.completed",
            extra={"design_id": design.id, "requirements": len(requirements)}
        )
        return design

    async def generate_spec(
        self,
        description: str,
        history: Sequence[LLMMessage] = (),
    ) -> Spec:
        design = self.build_design(description)
        return repair_spec(design_to_spec.convert(design))

