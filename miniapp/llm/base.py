"""
miniapp/llm/base.py
Base types for spec generators.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from miniapp.models.spec import Spec


class LLMProvider(str, Enum):
    """Supported spec generators"""
    OPENAI = "openai"
    HEURISTIC = "heuristic"


class GenerationErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    EMPTY_INPUT = "empty_input"
    MALFORMED_RESPONSE = "malformed_response"
    UPSTREAM_ERROR = "upstream_error"
    HTTP_STATUS = "http_status"
    TRANSPORT = "transport"
    PARSE_FAILED = "parse_failed"


class GenerationError(Exception):
    """Spec generation failed; ``user_message`` is safe to show in chat"""

    def __init__(
        self,
        kind: GenerationErrorKind,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if self.kind == GenerationErrorKind.MISSING_CREDENTIAL:
            return "The generation API key is not configured. Please add your API key in Settings."
        if self.kind == GenerationErrorKind.EMPTY_INPUT:
            return "I need a user prompt to respond to."
        if self.kind == GenerationErrorKind.MALFORMED_RESPONSE:
            return "Received an invalid response from the generation API."
        if self.kind == GenerationErrorKind.UPSTREAM_ERROR:
            return f"Generation API error: {self.detail}"
        if self.kind == GenerationErrorKind.HTTP_STATUS:
            return f"HTTP error: {self.status_code}"
        if self.kind == GenerationErrorKind.TRANSPORT:
            return f"Could not reach the generation API: {self.detail}"
        return "Failed to parse the generated app specification."


@dataclass
class LLMMessage:
    """Standardized message format"""
    role: str  # "system", "user", "assistant"
    content: str


class BaseSpecGenerator(ABC):
    """Turns a natural language description into a MiniApp spec"""

    provider: LLMProvider

    @abstractmethod
    async def generate_spec(
        self,
        description: str,
        history: Sequence[LLMMessage] = (),
    ) -> Spec:
        """
        Generate a spec for ``description``.

        Raises:
            GenerationError: with the kind describing what went wrong
        """

    async def health_check(self) -> bool:
        return True

    def format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, str]]:
        return [{"role": msg.role, "content": msg.content} for msg in messages]
