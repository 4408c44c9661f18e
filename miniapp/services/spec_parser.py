"""
Extract a spec from generator output.

Generators are asked for a bare JSON object but often wrap it in Markdown
code fences or surround it with prose. The first balanced ``{...}`` block
wins.
"""
import json
import re
from typing import Any, Dict

from miniapp.llm.base import GenerationError, GenerationErrorKind
from miniapp.models.spec import Spec, SpecDecodeError, decode_spec
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)

CODE_FENCE = re.compile(r'```(?:json|JSON)?\s*(.*?)\s*```', re.DOTALL)


def strip_code_fences(content: str) -> str:
    """Body of the first fenced block, or the content unchanged"""
    match = CODE_FENCE.search(content)
    return match.group(1) if match else content.strip()


def extract_json_object(content: str) -> Dict[str, Any]:
    """
    First balanced JSON object in ``content``.

    Raises:
        ValueError: no decodable object is present
    """
    decoder = json.JSONDecoder()
    start = content.find("{")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(content, start)
        except json.JSONDecodeError:
            start = content.find("{", start + 1)
            continue
        if isinstance(parsed, dict):
            return parsed
        start = content.find("{", start + 1)
    raise ValueError("no JSON object found")


def parse_spec_payload(content: str) -> Spec:
    """
    Decode generator output into a Spec.

    Raises:
        GenerationError: PARSE_FAILED when no spec can be recovered
    """
    body = strip_code_fences(content or "")
    try:
        payload = extract_json_object(body)
        return decode_spec(payload)
    except (ValueError, SpecDecodeError) as e:
        logger.warning(
            "spec.parse.failed",
            extra={"error": str(e), "preview": body[:200]},
        )
        raise GenerationError(GenerationErrorKind.PARSE_FAILED, detail=str(e)) from e
