"""
AppDesign -> HTML/CSS/JavaScript compiler.

Each component becomes one element addressed as ``#component-<id>``;
children are emitted in their original order. Numeric style values that are
missing or out of range are replaced by safe fallbacks so a broken design
still produces a working page.
"""
import html
import json
import math
import re
import uuid
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from miniapp.models.design import AppComponent, AppDesign, DesignComponentType
from miniapp.services.compiler.fonts import css_font_weight
from miniapp.services.validator import is_valid_color
from miniapp.utils.datetime_utils import to_iso_string
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)

SAFE_WIDTH = 320
SAFE_HEIGHT = 48
SAFE_FONT_SIZE = 16
MARGIN_BOTTOM = 12
DEFAULT_CLICK_HANDLER = "handleClick"
UNSAFE_CSS_VALUE = re.compile(r"[;{}<>\\\r\n]")

BASE_CSS = """body {
  margin: 0;
  font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
  background: #F4F6FB;
}
#app-root {
  display: flex;
  flex-direction: column;
  align-items: center;
  padding: 16px 0;
}
.card-title {
  margin: 0 0 8px 0;
  font-size: 18px;
}
"""


class GeneratedApp(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    html: str
    css: str
    javascript: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


def element_id(component: AppComponent) -> str:
    return f"component-{component.id}"


def _attr(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _text(value: Any) -> str:
    return html.escape(str(value), quote=False)


def _safe_positive(value: float, fallback: float) -> float:
    return value if math.isfinite(value) and value > 0 else fallback


def _safe_non_negative(value: float, fallback: float = 0) -> float:
    return value if math.isfinite(value) and value >= 0 else fallback


def _px(value: float) -> str:
    return f"{value:g}px"


def _finite(value: float, fallback: float = 0) -> float:
    return value if math.isfinite(value) else fallback


def css_color(value: Any, fallback: str) -> str:
    """Validated color literal; anything else becomes ``fallback``"""
    return value if is_valid_color(value) else fallback


def css_identifier(name: str) -> str:
    """Escape ``name`` for use in a CSS id selector"""
    return "".join(
        ch if ch.isascii() and (ch.isalnum() or ch in "-_") else f"\\{ord(ch):x} "
        for ch in name
    )


def js_identifier(name: str) -> str:
    """Turn a free-form action name into a callable JavaScript identifier"""
    ident = re.sub(r"\W", "_", name.strip())
    if not ident:
        return DEFAULT_CLICK_HANDLER
    if ident[0].isdigit():
        ident = f"_{ident}"
    return ident


class MarkupCompiler:
    """Recursive string builder for the HTML preview pipeline"""

    # ------------------------------------------------------------------
    # HTML
    # ------------------------------------------------------------------

    def generate_html(self, design: AppDesign) -> str:
        lines: List[str] = ['<div id="app-root">']
        self._html_node(design.root_component, 1, lines)
        lines.append("</div>")
        return "\n".join(lines)

    def _html_node(self, component: AppComponent, depth: int, lines: List[str]) -> None:
        pad = "  " * depth
        kind = component.type
        data = component.data
        ident = _attr(element_id(component))
        css_class = f"component-{kind.value.lower()}"

        if kind == DesignComponentType.CONTAINER:
            lines.append(f'{pad}<div id="{ident}" class="{css_class}">')
            for child in component.children:
                self._html_node(child, depth + 1, lines)
            lines.append(f"{pad}</div>")

        elif kind == DesignComponentType.TEXT:
            lines.append(f'{pad}<p id="{ident}" class="{css_class}">{_text(data.text or "")}</p>')

        elif kind == DesignComponentType.BUTTON:
            handler = js_identifier(data.action) if data.action else DEFAULT_CLICK_HANDLER
            onclick = _attr(f"{handler}({json.dumps(component.id)})")
            lines.append(
                f'{pad}<button id="{ident}" class="{css_class}" onclick="{onclick}">'
                f'{_text(data.text or "Button")}</button>'
            )

        elif kind == DesignComponentType.IMAGE:
            width = int(_safe_positive(component.layout.width, SAFE_WIDTH))
            height = int(_safe_positive(component.layout.height, SAFE_HEIGHT))
            src = data.image_url or f"https://via.placeholder.com/{width}x{height}"
            alt = data.text or "Image"
            lines.append(f'{pad}<img id="{ident}" class="{css_class}" src="{_attr(src)}" alt="{_attr(alt)}">')

        elif kind == DesignComponentType.INPUT:
            lines.append(
                f'{pad}<input type="text" id="{ident}" class="{css_class}" '
                f'placeholder="{_attr(data.placeholder or "")}" value="{_attr(data.value or "")}">'
            )

        elif kind == DesignComponentType.LIST:
            lines.append(f'{pad}<ul id="{ident}" class="{css_class}">')
            for item in data.items or []:
                lines.append(f"{pad}  <li>{_text(item)}</li>")
            lines.append(f"{pad}</ul>")

        elif kind == DesignComponentType.CARD:
            lines.append(f'{pad}<div id="{ident}" class="{css_class} card">')
            if data.text:
                lines.append(f'{pad}  <h3 class="card-title">{_text(data.text)}</h3>')
            for child in component.children:
                self._html_node(child, depth + 1, lines)
            lines.append(f"{pad}</div>")

        elif kind == DesignComponentType.DIVIDER:
            lines.append(f'{pad}<hr id="{ident}" class="{css_class}">')

        elif kind == DesignComponentType.SPACER:
            lines.append(f'{pad}<div id="{ident}" class="{css_class} spacer"></div>')

    # ------------------------------------------------------------------
    # CSS
    # ------------------------------------------------------------------

    def generate_css(self, design: AppDesign) -> str:
        rules = [BASE_CSS]
        for component in design.components():
            rules.append(self._css_rule(component))
        return "\n".join(rules)

    def _css_rule(self, component: AppComponent) -> str:
        layout = component.layout
        style = component.style
        padding = layout.padding

        declarations = [
            f"width: {_px(_safe_positive(layout.width, SAFE_WIDTH))};",
        ]
        if component.type == DesignComponentType.SPACER:
            declarations.append(f"height: {_px(_safe_non_negative(layout.height))};")
        else:
            declarations.append(f"min-height: {_px(_safe_positive(layout.height, SAFE_HEIGHT))};")

        declarations += [
            "padding: {} {} {} {};".format(
                _px(_safe_non_negative(padding.top)),
                _px(_safe_non_negative(padding.right)),
                _px(_safe_non_negative(padding.bottom)),
                _px(_safe_non_negative(padding.left)),
            ),
            f"margin-bottom: {MARGIN_BOTTOM}px;",
            "box-sizing: border-box;",
            f"background-color: {css_color(style.background_color, '#FFFFFF')};",
            f"color: {css_color(style.text_color, '#0F172A')};",
            f"font-size: {_px(_safe_positive(style.font_size, SAFE_FONT_SIZE))};",
            f"font-weight: {css_font_weight(style.font_weight)};",
            f"border-radius: {_px(_safe_non_negative(style.border_radius))};",
            f"border: {_px(_safe_non_negative(style.border_width))} solid {css_color(style.border_color, '#000000')};",
            f"opacity: {style.opacity if math.isfinite(style.opacity) and 0 <= style.opacity <= 1 else 1.0};",
        ]

        if (
            style.font_family
            and style.font_family != "system"
            and not UNSAFE_CSS_VALUE.search(style.font_family)
        ):
            declarations.append(f"font-family: {style.font_family};")

        if style.shadow is not None:
            shadow = style.shadow
            declarations.append(
                f"box-shadow: {_px(_finite(shadow.offset_x))} {_px(_finite(shadow.offset_y))} "
                f"{_px(_safe_non_negative(shadow.radius))} {css_color(shadow.color, '#000000')};"
            )

        body = "\n".join(f"  {d}" for d in declarations)
        return f"#{css_identifier(element_id(component))} {{\n{body}\n}}"

    # ------------------------------------------------------------------
    # JavaScript
    # ------------------------------------------------------------------

    def generate_javascript(self, design: AppDesign) -> str:
        handlers: List[str] = []
        for component in design.components():
            if component.type != DesignComponentType.BUTTON or not component.data.action:
                continue
            name = js_identifier(component.data.action)
            if name != DEFAULT_CLICK_HANDLER and name not in handlers:
                handlers.append(name)

        parts = [
            "document.addEventListener('DOMContentLoaded', function() {",
            "  document.querySelectorAll('.component-input').forEach(function(input) {",
            "    input.addEventListener('input', function(event) {",
            "      handleInput(event.target.id, event.target.value);",
            "    });",
            "  });",
            "});",
            "",
        ]
        for name in handlers:
            parts += [
                f"function {name}(componentId) {{",
                f"  console.log('{name}', componentId);",
                f"  {DEFAULT_CLICK_HANDLER}(componentId);",
                "}",
                "",
            ]
        parts += [
            f"function {DEFAULT_CLICK_HANDLER}(componentId) {{",
            "  console.log('Button clicked:', componentId);",
            "}",
            "",
            "function handleInput(elementId, value) {",
            "  console.log('Input changed:', elementId, value);",
            "}",
        ]
        return "\n".join(parts)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def generate_app(self, design: AppDesign) -> GeneratedApp:
        app = GeneratedApp(
            name=design.name,
            html=self.generate_html(design),
            css=self.generate_css(design),
            javascript=self.generate_javascript(design),
            metadata={
                "designId": design.id,
                "designVersion": design.metadata.version,
                "componentCount": sum(1 for _ in design.components()),
                "generatedAt": to_iso_string(),
            },
        )
        logger.info(
            "markup.generate.completed",
            extra={"design_id": design.id, "components": app.metadata["componentCount"]}
        )
        return app


def render_document(app: GeneratedApp) -> str:
    """Single self-contained HTML document for a generated app"""
    return "\n".join([
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '  <meta charset="UTF-8">',
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0">',
        f"  <title>{_text(app.name)}</title>",
        "  <style>",
        app.css,
        "  </style>",
        "</head>",
        "<body>",
        app.html,
        "  <script>",
        app.javascript,
        "  </script>",
        "</body>",
        "</html>",
    ])


markup_compiler = MarkupCompiler()
