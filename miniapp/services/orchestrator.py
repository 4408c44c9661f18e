"""
Build orchestrator.

Drives design -> validate -> repair -> compile -> runtime as an explicit
state machine. ``progress`` and ``detail`` are derived from the current
``BuildStatus``; nothing else needs to be kept in sync.

Prompt builds go through the remote generator first and fall back to the
local builder when it fails. Every build and every reset takes a ticket; a prompt build whose ticket
was superseded while it awaited generation is discarded.
"""
import uuid
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence

from pydantic import BaseModel, Field

from miniapp.config import settings
from miniapp.llm.base import BaseSpecGenerator, GenerationError, GenerationErrorKind, LLMMessage
from miniapp.llm.heuristic_provider import HeuristicSpecGenerator
from miniapp.llm.openai_provider import OpenAISpecGenerator
from miniapp.models.creation import ChatMessage, ChatRole
from miniapp.models.design import AppDesign
from miniapp.models.spec import Spec
from miniapp.models.validation import ValidationResult
from miniapp.services.compiler.dsl_adapter import design_to_spec
from miniapp.services.repair import repair_design, repair_spec
from miniapp.services.runtime import MiniAppRuntime
from miniapp.services.validator import design_validator, spec_validator
from miniapp.utils.logging import get_logger, log_context

logger = get_logger(__name__)


class BuildStatus(str, Enum):
    IDLE = "idle"
    DESIGNING = "designing"
    GENERATING = "generating"
    VALIDATING = "validating"
    DEBUGGING = "debugging"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# A new build may start from any state, which is why DESIGNING and
# VALIDATING are reachable from the terminal states as well.
TRANSITIONS: Dict[BuildStatus, FrozenSet[BuildStatus]] = {
    BuildStatus.IDLE: frozenset({BuildStatus.DESIGNING, BuildStatus.VALIDATING}),
    BuildStatus.DESIGNING: frozenset({
        BuildStatus.DESIGNING, BuildStatus.VALIDATING, BuildStatus.FAILED,
    }),
    BuildStatus.VALIDATING: frozenset({
        BuildStatus.DEBUGGING, BuildStatus.GENERATING, BuildStatus.RUNNING, BuildStatus.FAILED,
    }),
    BuildStatus.DEBUGGING: frozenset({BuildStatus.GENERATING, BuildStatus.FAILED}),
    BuildStatus.GENERATING: frozenset({BuildStatus.RUNNING, BuildStatus.FAILED}),
    BuildStatus.RUNNING: frozenset({BuildStatus.COMPLETED, BuildStatus.FAILED}),
    BuildStatus.COMPLETED: frozenset({BuildStatus.DESIGNING, BuildStatus.VALIDATING}),
    BuildStatus.FAILED: frozenset({BuildStatus.DESIGNING, BuildStatus.VALIDATING}),
}

PROGRESS: Dict[BuildStatus, float] = {
    BuildStatus.IDLE: 0.0,
    BuildStatus.DESIGNING: 0.05,
    BuildStatus.VALIDATING: 0.1,
    BuildStatus.DEBUGGING: 0.3,
    BuildStatus.GENERATING: 0.5,
    BuildStatus.RUNNING: 0.9,
    BuildStatus.COMPLETED: 1.0,
    BuildStatus.FAILED: 0.0,
}

DETAILS: Dict[BuildStatus, str] = {
    BuildStatus.IDLE: "",
    BuildStatus.DESIGNING: "Designing app structure...",
    BuildStatus.VALIDATING: "Validating app design structure...",
    BuildStatus.DEBUGGING: "Auto-fixing design issues...",
    BuildStatus.GENERATING: "Compiling MiniApp DSL...",
    BuildStatus.RUNNING: "Launching MiniApp...",
    BuildStatus.COMPLETED: "App build complete! ✓",
    BuildStatus.FAILED: "Build failed",
}

BUILD_COMPLETED_MESSAGE = "I've created your app! It's ready to test. Would you like to save it to 'My Creations'?"


class BuildStateError(RuntimeError):
    """Transition not allowed from the current build status"""

    def __init__(self, current: BuildStatus, target: BuildStatus):
        self.current = current
        self.target = target
        super().__init__(f"Illegal build transition {current.value} -> {target.value}")


class BuildReport(BaseModel):
    build_id: str
    status: BuildStatus
    source: str = "design"  # design | remote | local | spec
    design: Optional[AppDesign] = None
    spec: Optional[Spec] = None
    original_validation: Optional[ValidationResult] = None
    final_validation: Optional[ValidationResult] = None
    repaired: bool = False
    messages: List[ChatMessage] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def issues_resolved(self) -> int:
        """Findings removed by repair; negative if repair introduced some"""
        if self.original_validation is None or self.final_validation is None:
            return 0
        before = len(self.original_validation.errors) + len(self.original_validation.warnings)
        after = len(self.final_validation.errors) + len(self.final_validation.warnings)
        return before - after

    @property
    def score_delta(self) -> float:
        if self.original_validation is None or self.final_validation is None:
            return 0.0
        return round(self.final_validation.score - self.original_validation.score, 4)


class BuildOrchestrator:

    def __init__(
        self,
        runtime: Optional[MiniAppRuntime] = None,
        generator: Optional[BaseSpecGenerator] = None,
        fallback: Optional[HeuristicSpecGenerator] = None,
        fallback_enabled: bool = None,
    ):
        self.runtime = runtime or MiniAppRuntime()
        self.generator = generator or OpenAISpecGenerator()
        self.fallback = fallback or HeuristicSpecGenerator()
        self.fallback_enabled = (
            settings.local_fallback_enabled if fallback_enabled is None else fallback_enabled
        )

        self.status = BuildStatus.IDLE
        self.current_design: Optional[AppDesign] = None
        self.spec: Optional[Spec] = None
        self.validation: Optional[ValidationResult] = None
        self.error_message: Optional[str] = None
        self.messages: List[ChatMessage] = []
        self._ticket = 0

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def progress(self) -> float:
        return PROGRESS[self.status]

    @property
    def detail(self) -> str:
        if self.status == BuildStatus.FAILED and self.error_message:
            return f"Build failed: {self.error_message}"
        return DETAILS[self.status]

    @property
    def is_building(self) -> bool:
        return self.status not in (BuildStatus.IDLE, BuildStatus.COMPLETED, BuildStatus.FAILED)

    def _transition(self, target: BuildStatus) -> None:
        if target not in TRANSITIONS[self.status]:
            raise BuildStateError(self.status, target)
        logger.debug(
            "build.status.changed",
            extra={"from": self.status.value, "to": target.value}
        )
        self.status = target

    def _fail(self, message: str) -> None:
        self.error_message = message
        self._transition(BuildStatus.FAILED)
        logger.error("❌ build.failed", extra={"error": message})

    def _say(self, content: str) -> ChatMessage:
        message = ChatMessage(role=ChatRole.ASSISTANT, content=content)
        self.messages.append(message)
        return message

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    def run_full_cycle(self, design: AppDesign, auto_debug: bool = True) -> BuildReport:
        """Validate, optionally repair, compile and load ``design``"""
        self._ticket += 1
        return self._run_design(design, auto_debug)

    def load_spec(self, spec: Spec) -> BuildReport:
        """Load a spec directly, bypassing the design pipeline"""
        self._ticket += 1
        return self._load(spec)

    def _run_design(self, design: AppDesign, auto_debug: bool = True) -> BuildReport:
        build_id = str(uuid.uuid4())
        with log_context(build_id=build_id):
            self.error_message = None
            self._transition(BuildStatus.VALIDATING)
            original = design_validator.validate(design)
            self.validation = original

            final_design = design
            repaired = False
            if auto_debug and not original.is_valid:
                self._transition(BuildStatus.DEBUGGING)
                final_design = repair_design(design, original)
                self.validation = design_validator.validate(final_design)
                repaired = True
                logger.info(
                    "🔧 build.debug.completed",
                    extra={
                        "before": original.summary(),
                        "after": self.validation.summary(),
                    }
                )

            self.current_design = final_design

            self._transition(BuildStatus.GENERATING)
            try:
                spec = design_to_spec.convert(final_design)
            except ValueError as e:
                self._fail(str(e))
                return BuildReport(
                    build_id=build_id,
                    status=self.status,
                    design=final_design,
                    original_validation=original,
                    final_validation=self.validation,
                    repaired=repaired,
                    error=str(e),
                )
            self.spec = spec

            self._transition(BuildStatus.RUNNING)
            self.runtime.load(spec)
            self._transition(BuildStatus.COMPLETED)

            logger.info(
                "✅ build.completed",
                extra={
                    "design_id": final_design.id,
                    "repaired": repaired,
                    "score": self.validation.score,
                }
            )
            return BuildReport(
                build_id=build_id,
                status=self.status,
                design=final_design,
                spec=spec,
                original_validation=original,
                final_validation=self.validation,
                repaired=repaired,
            )

    def _load(self, spec: Spec) -> BuildReport:
        build_id = str(uuid.uuid4())
        with log_context(build_id=build_id):
            self.error_message = None
            self._transition(BuildStatus.VALIDATING)
            original = spec_validator.validate(spec)
            fixed = repair_spec(spec)
            self.validation = spec_validator.validate(fixed)
            self.spec = fixed

            self._transition(BuildStatus.RUNNING)
            self.runtime.load(fixed)
            self._transition(BuildStatus.COMPLETED)

            logger.info(
                "✅ build.spec.loaded",
                extra={"spec_id": fixed.id, "score": self.validation.score}
            )
            return BuildReport(
                build_id=build_id,
                status=self.status,
                source="spec",
                spec=fixed,
                original_validation=original,
                final_validation=self.validation,
                repaired=fixed.pages != spec.pages,
            )

    async def build_from_prompt(
        self,
        prompt: str,
        history: Sequence[LLMMessage] = (),
    ) -> Optional[BuildReport]:
        """
        Build an app from a chat prompt.

        Returns None when a newer build started while this one was waiting
        on the generator; the orchestrator is then left as the newer build
        has it.
        """
        self._ticket += 1
        ticket = self._ticket
        build_id = str(uuid.uuid4())

        with log_context(build_id=build_id):
            self.messages.append(ChatMessage(role=ChatRole.USER, content=prompt))
            self.error_message = None
            self._transition(BuildStatus.DESIGNING)
            logger.info("🚀 build.prompt.started", extra={"ticket": ticket, "prompt_length": len(prompt)})

            spec: Optional[Spec] = None
            failure: Optional[GenerationError] = None
            try:
                spec = await self.generator.generate_spec(prompt, history)
            except GenerationError as e:
                failure = e
            except Exception as e:
                logger.error(
                    "❌ build.prompt.generator_crashed",
                    extra={"error_type": type(e).__name__},
                    exc_info=e
                )
                failure = GenerationError(GenerationErrorKind.MALFORMED_RESPONSE, detail=str(e))

            if ticket != self._ticket:
                logger.info("build.prompt.superseded", extra={"ticket": ticket, "latest": self._ticket})
                return None

            if spec is not None:
                report = self._load(spec)
                report.source = "remote"
                report.build_id = build_id
                report.messages = [self._say(BUILD_COMPLETED_MESSAGE)]
                return report

            return self._build_locally(build_id, prompt, failure)

    def _build_locally(
        self,
        build_id: str,
        prompt: str,
        failure: GenerationError,
    ) -> BuildReport:
        logger.warning(
            "build.prompt.remote_failed",
            extra={"kind": failure.kind.value, "detail": failure.detail}
        )
        notes: List[ChatMessage] = []

        if not self.fallback_enabled:
            notes.append(self._say(f"I encountered an error while building your app: {failure.user_message}"))
            self._fail(failure.user_message)
            return BuildReport(build_id=build_id, status=self.status, messages=notes, error=failure.user_message)

        notes.append(self._say(f"{failure.user_message} Building a local prototype instead."))
        try:
            design = self.fallback.build_design(prompt)
        except GenerationError as e:
            notes.append(self._say(f"I encountered an error while building your app: {e.user_message}"))
            self._fail(e.user_message)
            return BuildReport(build_id=build_id, status=self.status, messages=notes, error=e.user_message)

        report = self._run_design(design)
        report.build_id = build_id
        report.source = "local"
        if report.status == BuildStatus.COMPLETED:
            notes.append(self._say(BUILD_COMPLETED_MESSAGE))
        report.messages = notes
        return report

    def reset(self) -> None:
        self._ticket += 1
        self.status = BuildStatus.IDLE
        self.current_design = None
        self.spec = None
        self.validation = None
        self.error_message = None
        self.runtime.stop()
        logger.info("build.reset")
