"""Shared fixtures for the MiniApp test suite."""

from __future__ import annotations

from typing import Any, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from miniapp.models.design import (
    AppComponent,
    AppDesign,
    ComponentData,
    DesignComponentType,
    LayoutProperties,
)
from miniapp.models.spec import decode_spec


# ---------------------------------------------------------------------------
# Spec documents
# ---------------------------------------------------------------------------


@pytest.fixture
def counter_spec_payload() -> Dict[str, Any]:
    """Two pages, a toggle, an input and one action of every kind."""
    return {
        "id": "spec-counter",
        "ownerId": "user-1",
        "name": "Counter",
        "description": "Tiny demo app",
        "category": "productivity",
        "version": 2,
        "capabilities": ["TIMER"],
        "initialState": {"darkMode": False, "title": "Hello"},
        "pages": [
            {
                "id": "home",
                "title": "Home",
                "layout": "scroll",
                "components": [
                    {
                        "id": "greeting",
                        "type": "label",
                        "props": {"text": "Hi there", "layoutHint": "hero"},
                    },
                    {
                        "id": "dark",
                        "type": "toggle",
                        "props": {"label": "Dark mode"},
                        "bindings": {"stateKey": "darkMode"},
                    },
                    {
                        "id": "name",
                        "type": "input",
                        "props": {"placeholder": "Your name"},
                        "bindings": {"stateKey": "title"},
                    },
                    {
                        "id": "go",
                        "type": "button",
                        "props": {"label": "Details"},
                        "actionIds": ["nav-details"],
                    },
                ],
            },
            {
                "id": "details",
                "title": "Details",
                "components": [
                    {"id": "about", "type": "label", "props": {"text": "About"}},
                ],
            },
        ],
        "actions": [
            {"id": "nav-details", "type": "NAVIGATE", "params": {"targetPageId": "details"}},
            {"id": "nav-home", "type": "NAVIGATE", "params": {"targetPageId": "home"}},
            {"id": "alert", "type": "SHOW_ALERT", "params": {"title": "Hey", "message": "Saved"}},
            {"id": "set-title", "type": "SET_STATE", "params": {"key": "title", "value": "Updated"}},
            {"id": "timer", "type": "START_TIMER"},
        ],
        "createdAt": "2026-01-05T10:00:00Z",
        "updatedAt": "2026-01-05T10:00:00Z",
    }


@pytest.fixture
def counter_spec(counter_spec_payload):
    return decode_spec(counter_spec_payload)


# ---------------------------------------------------------------------------
# Designs
# ---------------------------------------------------------------------------


def make_component(kind: DesignComponentType, component_id: str, **data) -> AppComponent:
    return AppComponent(
        id=component_id,
        type=kind,
        layout=LayoutProperties(width=343, height=48),
        data=ComponentData(**data),
    )


@pytest.fixture
def simple_design() -> AppDesign:
    """A valid design: root container with a title, a list and a button."""
    root = AppComponent(
        id="root",
        type=DesignComponentType.CONTAINER,
        layout=LayoutProperties(width=375, height=812),
        children=[
            make_component(DesignComponentType.TEXT, "title", text="Welcome"),
            make_component(DesignComponentType.LIST, "items", items=["One", "Two"]),
            make_component(DesignComponentType.BUTTON, "cta", text="Start", action="startSession"),
        ],
    )
    for child in root.children:
        child.parent_id = root.id
    return AppDesign(id="design-1", name="Simple", description="A simple app", root_component=root)


@pytest.fixture
def broken_design(simple_design) -> AppDesign:
    """Same tree with a zero width, a bad color and an empty button."""
    design = simple_design.model_copy(deep=True)
    title, _, cta = design.root_component.children
    title.layout.width = 0
    title.style.text_color = "not-a-color"
    cta.data.text = None
    return design


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client():
    from miniapp.api.deps import get_spec_generator, get_store
    from miniapp.core.store import MemoryBackend
    from miniapp.llm.openai_provider import OpenAISpecGenerator
    from miniapp.main import app

    store = MemoryBackend()
    generator = OpenAISpecGenerator(config={"api_key": None})
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_spec_generator] = lambda: generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
