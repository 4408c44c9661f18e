"""
Auto-repair passes.

``repair_design`` clamps every field the design validator flags to a safe
default, in one deterministic top-down pass over a copy of the tree.
Cross-node problems (duplicate ids, dangling parent ids) are left alone.
"""
from typing import List, Optional

from miniapp.models.design import AppComponent, AppDesign, DesignComponentType
from miniapp.models.spec import Component, ComponentProps, ComponentType, Page, Spec
from miniapp.models.validation import ValidationResult
from miniapp.services.compiler.markup import GeneratedApp
from miniapp.services.validator import is_valid_color
from miniapp.utils.datetime_utils import utc_now
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_WIDTH = 200
FALLBACK_HEIGHT = 100
FALLBACK_BACKGROUND = "#FFFFFF"
FALLBACK_TEXT_COLOR = "#0F172A"
FALLBACK_BORDER_COLOR = "#000000"
FALLBACK_OPACITY = 1.0
FALLBACK_FONT_SIZE = 16
FALLBACK_BUTTON_TEXT = "Tap"
IMPROVED_ROOT_BACKGROUND = "#F4F6FB"


def _repair_component(component: AppComponent, fixes: List[str]) -> None:
    layout = component.layout
    style = component.style

    if layout.width <= 0:
        layout.width = FALLBACK_WIDTH
        fixes.append(f"{component.id}.width")
    if layout.height <= 0 and component.type != DesignComponentType.SPACER:
        layout.height = FALLBACK_HEIGHT
        fixes.append(f"{component.id}.height")

    if not is_valid_color(style.background_color):
        style.background_color = FALLBACK_BACKGROUND
        fixes.append(f"{component.id}.backgroundColor")
    if not is_valid_color(style.text_color):
        style.text_color = FALLBACK_TEXT_COLOR
        fixes.append(f"{component.id}.textColor")
    if not is_valid_color(style.border_color):
        style.border_color = FALLBACK_BORDER_COLOR
        fixes.append(f"{component.id}.borderColor")
    if not 0 <= style.opacity <= 1:
        style.opacity = FALLBACK_OPACITY
        fixes.append(f"{component.id}.opacity")
    if style.font_size <= 0:
        style.font_size = FALLBACK_FONT_SIZE
        fixes.append(f"{component.id}.fontSize")

    if component.type == DesignComponentType.BUTTON and not component.data.text:
        component.data.text = FALLBACK_BUTTON_TEXT
        fixes.append(f"{component.id}.text")

    for child in component.children:
        _repair_component(child, fixes)


def repair_design(design: AppDesign, validation: Optional[ValidationResult] = None) -> AppDesign:
    """
    Return a repaired copy of ``design``; the input is never mutated.

    When ``validation`` is given and reports no errors the design is returned
    as-is. Re-validating the result is the caller's job.
    """
    if validation is not None and not validation.errors:
        return design

    repaired = design.model_copy(deep=True)
    fixes: List[str] = []
    _repair_component(repaired.root_component, fixes)
    repaired.metadata.updated_at = utc_now()

    logger.info(
        "🔧 design.repair.completed",
        extra={"design_id": design.id, "fixes": len(fixes), "fixed_fields": fixes[:20]}
    )
    return repaired


def improve_design(design: AppDesign, suggestions: Optional[List[str]] = None) -> AppDesign:
    """Repair, then give the root the standard canvas background"""
    improved = repair_design(design)
    improved.root_component.style.background_color = IMPROVED_ROOT_BACKGROUND
    logger.info(
        "design.improve.completed",
        extra={"design_id": design.id, "suggestions": len(suggestions or [])}
    )
    return improved


def repair_spec(spec: Spec) -> Spec:
    """
    Make a decoded spec loadable.

    A spec without pages gets a ``main`` page, every empty page gets a
    welcome label, and ``updatedAt`` is refreshed.
    """
    welcome = Component(
        id="welcome-label",
        type=ComponentType.LABEL,
        props=ComponentProps(text=f"Welcome to {spec.name}"),
    )

    pages = list(spec.pages)
    if not pages:
        pages = [Page(id="main", title=spec.name)]
        logger.info("spec.repair.page_added", extra={"spec_id": spec.id})

    used_ids = {c.id for c in spec.components()}
    fixed_pages = []
    for page in pages:
        if page.components:
            fixed_pages.append(page)
            continue
        label_id = welcome.id if welcome.id not in used_ids else f"{page.id}-welcome"
        used_ids.add(label_id)
        fixed_pages.append(page.model_copy(update={
            "components": (welcome.model_copy(update={"id": label_id}),),
        }))

    return spec.model_copy(update={
        "pages": tuple(fixed_pages),
        "updated_at": utc_now(),
    })


def debug_generated_markup(app: GeneratedApp, runtime_error: str = "") -> GeneratedApp:
    """
    Patch generated markup after a runtime failure report.

    - the HTML gets a ``data-testid="root"`` wrapper when it has none
    - the CSS gets a ``body`` rule when it has none
    - script errors wrap the JavaScript in a DOMContentLoaded listener
    """
    html = app.html
    css = app.css
    javascript = app.javascript

    if 'data-testid="root"' not in html:
        html = f'<div data-testid="root">\n{html}\n</div>'

    if "body" not in css:
        css = "body { margin: 0; font-family: -apple-system, BlinkMacSystemFont, sans-serif; }\n" + css

    if "script" in runtime_error.lower() and "DOMContentLoaded" not in javascript:
        javascript = (
            "document.addEventListener('DOMContentLoaded', function() {\n"
            f"{javascript}\n"
            "});"
        )

    logger.info(
        "markup.debug.completed",
        extra={"app_id": app.id, "error": runtime_error[:200]}
    )
    return app.model_copy(update={"html": html, "css": css, "javascript": javascript})
