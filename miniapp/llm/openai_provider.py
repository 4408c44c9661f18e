"""
miniapp/llm/openai_provider.py
Remote spec generator on an OpenAI compatible chat completion endpoint.
"""
import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI, RateLimitError

from miniapp.config import settings
from miniapp.llm.base import (
    BaseSpecGenerator,
    GenerationError,
    GenerationErrorKind,
    LLMMessage,
    LLMProvider,
)
from miniapp.models.spec import Spec
from miniapp.services.repair import repair_spec
from miniapp.services.spec_parser import parse_spec_payload
from miniapp.utils.logging import get_logger, trace_async

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a mini app generator. Respond with ONE JSON object and nothing else.

Schema:
{
  "name": string,
  "description": string,
  "category": "utility" | "learning" | "productivity" | "wellness" | "entertainment" | "finance",
  "version": 1,
  "capabilities": ["FLASHLIGHT" | "TIMER" | "LOCAL_NOTIFICATIONS" | "HAPTICS"],
  "initialState": { "<key>": <any JSON value> },
  "pages": [
    {
      "id": string,
      "title": string,
      "layout": "scroll" | "center" | "grid",
      "components": [Component]
    }
  ],
  "actions": [
    { "id": string, "type": "NAVIGATE" | "SHOW_ALERT" | "SET_STATE" | "TOGGLE_FLASHLIGHT" | "START_TIMER", "params": {} }
  ]
}

Component:
{
  "id": string,
  "type": "container" | "label" | "button" | "toggle" | "image" | "timerDisplay" | "list" | "input" | "quizQuestion" | "spacer",
  "props": {
    "text": string, "label": string, "placeholder": string, "imageURL": string,
    "items": [string], "options": [string], "layoutHint": "block" | "inline" | "hero",
    "style": {
      "backgroundColor": "#RRGGBB", "textColor": "#RRGGBB", "accentColor": "#RRGGBB",
      "fontSize": number, "fontWeight": number, "cornerRadius": number,
      "padding": number, "spacing": number
    }
  },
  "bindings": { "stateKey": string },
  "actionIds": [string],
  "children": [Component]
}

Rules:
- Every id in "actionIds" must be the id of an entry in "actions".
- NAVIGATE params: {"targetPageId": "<page id>"}; SHOW_ALERT params: {"title", "message"};
  SET_STATE params: {"key": "<state key>", "value": <any JSON value>}.
- Toggles and inputs read and write the state key named in "bindings".
- Keep the app small: at most 4 pages and 20 components.
"""


class OpenAISpecGenerator(BaseSpecGenerator):

    provider = LLMProvider.OPENAI

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        config = config or settings.llm_config
        self.api_key = config.get("api_key")
        self.model = config.get("model", "gpt-4o")
        self.temperature = config.get("temperature", 0.3)
        self.max_tokens = config.get("max_tokens", 4000)
        self.max_retries = max(1, int(config.get("max_retries", 2)))
        self.retry_delay = config.get("retry_delay", 1.0)
        self._base_url = config.get("base_url")
        self._timeout = config.get("timeout", 60.0)
        self._client = client

        self.total_requests = 0
        self.failed_requests = 0

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,  # retries are handled here
            )
            logger.info(
                "llm.openai.client.created",
                extra={"model": self.model, "base_url": self._base_url, "timeout": self._timeout}
            )
        return self._client

    def build_messages(self, description: str, history: Sequence[LLMMessage]) -> List[LLMMessage]:
        messages = [LLMMessage(role="system", content=SYSTEM_PROMPT)]
        messages.extend(m for m in history if m.role in ("user", "assistant"))
        messages.append(LLMMessage(
            role="user",
            content=f"Create a mini app for this request:\n{description.strip()}",
        ))
        return messages

    @trace_async("llm.openai.generate_spec")
    async def generate_spec(
        self,
        description: str,
        history: Sequence[LLMMessage] = (),
    ) -> Spec:
        if not self.api_key:
            raise GenerationError(GenerationErrorKind.MISSING_CREDENTIAL)
        if not description or not description.strip():
            raise GenerationError(GenerationErrorKind.EMPTY_INPUT)

        formatted = self.format_messages(self.build_messages(description, history))
        content = await self._complete(formatted)
        spec = parse_spec_payload(content)
        return repair_spec(spec)

    async def _complete(self, formatted: List[Dict[str, str]]) -> str:
        last_error: Optional[GenerationError] = None

        for attempt in range(1, self.max_retries + 1):
            self.total_requests += 1
            try:
                return await self._make_request(formatted, attempt)

            except RateLimitError as e:
                self.failed_requests += 1
                last_error = _status_error(e)
                logger.warning("llm.openai.rate_limited", extra={"attempt": attempt})

            except APIStatusError as e:
                self.failed_requests += 1
                last_error = _status_error(e)
                if e.status_code < 500:
                    logger.error(
                        "llm.openai.client_error",
                        extra={"status": e.status_code, "attempt": attempt},
                    )
                    raise last_error from e
                logger.warning(
                    "llm.openai.server_error",
                    extra={"status": e.status_code, "attempt": attempt},
                )

            except APIConnectionError as e:
                self.failed_requests += 1
                last_error = GenerationError(GenerationErrorKind.TRANSPORT, detail=str(e))
                logger.warning("llm.openai.transport_error", extra={"attempt": attempt, "error": str(e)})

            # anything else the client raises, e.g. a response it could not validate
            except APIError as e:
                self.failed_requests += 1
                logger.error("llm.openai.invalid_response", extra={"attempt": attempt, "error": str(e)})
                raise GenerationError(GenerationErrorKind.MALFORMED_RESPONSE, detail=str(e)) from e

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

        raise last_error

    async def _make_request(self, formatted: List[Dict[str, str]], attempt: int) -> str:
        start = datetime.now()
        completion = await self._get_client().chat.completions.create(
            model=self.model,
            messages=formatted,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
        )

        if not completion.choices:
            raise GenerationError(GenerationErrorKind.MALFORMED_RESPONSE, detail="no choices")
        content = completion.choices[0].message.content
        if not content:
            raise GenerationError(GenerationErrorKind.MALFORMED_RESPONSE, detail="empty content")

        usage = completion.usage
        logger.info(
            "llm.openai.response",
            extra={
                "attempt": attempt,
                "response_time": (datetime.now() - start).total_seconds(),
                "tokens": usage.total_tokens if usage else None,
                "finish_reason": completion.choices[0].finish_reason,
            }
        )
        return content

    async def health_check(self) -> bool:
        return bool(self.api_key)


def _status_error(e: APIStatusError) -> GenerationError:
    """Upstream message when the body carries one, bare status otherwise"""
    body = e.body if isinstance(e.body, dict) else {}
    message = body.get("message")
    if not message and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
    if message:
        return GenerationError(
            GenerationErrorKind.UPSTREAM_ERROR,
            detail=str(message),
            status_code=e.status_code,
        )
    return GenerationError(GenerationErrorKind.HTTP_STATUS, status_code=e.status_code)
