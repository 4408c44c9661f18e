"""
Renderer: (component, runtime) -> VisualNode.

Rendering is a pure function of the component and the runtime state; it
keeps no state of its own. Interactive nodes carry callbacks that feed
back into the runtime. Malformed numeric style values are replaced by
fallbacks here so a broken spec never produces NaN sizes.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from miniapp.models.spec import Component, ComponentStyle, ComponentType, LayoutHint, finite_or
from miniapp.services.images import ImageLoader, ImageState, parse_image_url
from miniapp.services.runtime import MiniAppRuntime

RENDER_FALLBACKS = {
    "font_size": 16.0,
    "font_weight": 400.0,
    "padding": 12.0,
    "spacing": 8.0,
    "corner_radius": 14.0,
    "border_width": 0.0,
}

SPACER_HEIGHT = 8.0
PAGE_TITLE_FONT_SIZE = 20.0
PAGE_TITLE_FONT_WEIGHT = 600.0
HERO_INSET = 12.0
BLOCK_INSET = 20.0


def first_present(*values: Optional[str]) -> Optional[str]:
    """First value that is not None; an empty string counts as present"""
    return next((v for v in values if v is not None), None)


@dataclass
class VisualNode:
    kind: str
    component_id: Optional[str] = None
    text: Optional[str] = None
    style: Dict[str, Any] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)
    children: List["VisualNode"] = field(default_factory=list)
    on_activate: Optional[Callable[[], None]] = None
    on_change: Optional[Callable[[str], None]] = None

    def activate(self) -> None:
        if self.on_activate is not None:
            self.on_activate()

    def change(self, text: str) -> None:
        if self.on_change is not None:
            self.on_change(text)

    def find(self, component_id: str) -> Optional["VisualNode"]:
        if self.component_id == component_id:
            return self
        for child in self.children:
            found = child.find(component_id)
            if found is not None:
                return found
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind}
        if self.component_id is not None:
            data["component_id"] = self.component_id
        if self.text is not None:
            data["text"] = self.text
        if self.style:
            data["style"] = self.style
        if self.props:
            data["props"] = self.props
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        data["interactive"] = self.on_activate is not None or self.on_change is not None
        return data


def resolve_style(style: ComponentStyle) -> Dict[str, Any]:
    """Style with every numeric field finite"""
    resolved = {
        name: finite_or(getattr(style, name), fallback)
        for name, fallback in RENDER_FALLBACKS.items()
    }
    resolved.update({
        "background_color": style.background_color,
        "text_color": style.text_color,
        "accent_color": style.accent_color,
        "border_color": style.border_color,
    })
    return resolved


def render(
    component: Component,
    runtime: MiniAppRuntime,
    images: Optional[ImageLoader] = None,
) -> VisualNode:
    props = component.props
    style = resolve_style(props.style)
    kind = component.type
    base = {"component_id": component.id, "style": style}

    if kind == ComponentType.CONTAINER:
        return VisualNode(
            kind="stack",
            children=[render(child, runtime, images) for child in component.children],
            **base,
        )

    if kind in (ComponentType.LABEL, ComponentType.TIMER_DISPLAY):
        return VisualNode(kind="text", text=first_present(props.text, props.label, "Label"), **base)

    if kind == ComponentType.BUTTON:
        action_ids = list(component.action_ids)
        return VisualNode(
            kind="button",
            text=first_present(props.label, props.text, "Button"),
            on_activate=lambda: runtime.dispatch(action_ids),
            **base,
        )

    if kind == ComponentType.TOGGLE:
        key = component.state_key
        return VisualNode(
            kind="toggle",
            text=first_present(props.label, props.text, "Toggle"),
            props={"state_key": key, "is_on": runtime.read_binding(key).as_bool() or False},
            on_activate=lambda: runtime.toggle(key),
            **base,
        )

    if kind == ComponentType.IMAGE:
        url = parse_image_url(props.image_url)
        if url is None:
            return VisualNode(kind="placeholder", text=first_present(props.label, "Image"), **base)
        state = images.state_for(props.image_url) if images is not None else ImageState.LOADING
        return VisualNode(
            kind="image",
            props={"url": str(url), "image_state": state.value},
            **base,
        )

    if kind == ComponentType.LIST:
        return VisualNode(
            kind="list",
            children=[
                VisualNode(kind="row", text=item, style=style)
                for item in props.items or ()
            ],
            **base,
        )

    if kind == ComponentType.INPUT:
        key = component.state_key
        return VisualNode(
            kind="text_field",
            text=runtime.read_binding(key).as_string() or "",
            props={
                "state_key": key,
                "placeholder": first_present(props.placeholder, "Enter value"),
                "label": props.label,
            },
            on_change=lambda text: runtime.write_binding(key, text),
            **base,
        )

    if kind == ComponentType.QUIZ_QUESTION:
        # Every option dispatches the component's action ids
        action_ids = list(component.action_ids)
        options = [
            VisualNode(
                kind="option",
                text=option,
                style=style,
                props={"index": index},
                on_activate=lambda: runtime.dispatch(action_ids),
            )
            for index, option in enumerate(props.options or ())
        ]
        return VisualNode(kind="quiz", text=first_present(props.text, "Question"), children=options, **base)

    if kind == ComponentType.SPACER:
        return VisualNode(kind="spacer", props={"height": SPACER_HEIGHT}, **base)

    return VisualNode(kind="placeholder", text=kind.value, **base)


def render_page(runtime: MiniAppRuntime, images: Optional[ImageLoader] = None) -> VisualNode:
    """Current page, or a "Missing page" placeholder when its id is unknown"""
    page = runtime.current_page
    if page is None:
        return VisualNode(
            kind="placeholder",
            text="Missing page",
            props={"page_id": runtime.current_page_id},
        )

    children: List[VisualNode] = []
    if page.title:
        children.append(VisualNode(
            kind="title",
            text=page.title,
            style={"font_size": PAGE_TITLE_FONT_SIZE, "font_weight": PAGE_TITLE_FONT_WEIGHT},
        ))
    for component in page.components:
        node = render(component, runtime, images)
        hero = component.props.layout_hint == LayoutHint.HERO
        node.props["horizontal_inset"] = HERO_INSET if hero else BLOCK_INSET
        children.append(node)

    props: Dict[str, Any] = {"page_id": page.id, "layout": page.layout.value}
    if runtime.active_alert is not None:
        props["alert"] = runtime.active_alert.model_dump()

    return VisualNode(kind="page", text=page.title, props=props, children=children)
