"""
Shared FastAPI dependencies.

The blob store and the spec generator are created lazily so the app works
without running its lifespan (tests override these through
``app.dependency_overrides``).
"""
from typing import Optional

from miniapp.config import settings
from miniapp.core.store import KeyValueStore, create_store
from miniapp.llm.base import BaseSpecGenerator
from miniapp.llm.openai_provider import OpenAISpecGenerator

_store: Optional[KeyValueStore] = None
_generator: Optional[BaseSpecGenerator] = None


def get_store() -> KeyValueStore:
    global _store
    if _store is None:
        _store = create_store(settings)
    return _store


def get_spec_generator() -> BaseSpecGenerator:
    global _generator
    if _generator is None:
        _generator = OpenAISpecGenerator()
    return _generator


async def close_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
