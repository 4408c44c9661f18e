"""
AppDesign -> MiniApp Spec compiler.

The root component becomes a single scroll page; its children, converted
recursively and in order, are the page components. Every button gets a
synthesized SHOW_ALERT action wired through its own actionIds.
"""
from typing import Dict, List, Tuple

from miniapp.config import settings
from miniapp.models.design import AppComponent, AppDesign, DesignComponentType
from miniapp.models.spec import (
    Action,
    ActionType,
    Capability,
    Category,
    Component,
    ComponentProps,
    ComponentStyle,
    ComponentType,
    Page,
    PageLayout,
    Spec,
)
from miniapp.models.value import Value
from miniapp.services.compiler.fonts import normalize_font_weight
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)

TYPE_MAP: Dict[DesignComponentType, ComponentType] = {
    DesignComponentType.CONTAINER: ComponentType.CONTAINER,
    DesignComponentType.TEXT: ComponentType.LABEL,
    DesignComponentType.BUTTON: ComponentType.BUTTON,
    DesignComponentType.IMAGE: ComponentType.IMAGE,
    DesignComponentType.INPUT: ComponentType.INPUT,
    DesignComponentType.LIST: ComponentType.LIST,
    DesignComponentType.CARD: ComponentType.CONTAINER,
    DesignComponentType.DIVIDER: ComponentType.SPACER,
    DesignComponentType.SPACER: ComponentType.SPACER,
}

CAPABILITY_KEYWORDS: Tuple[Tuple[str, Capability], ...] = (
    ("timer", Capability.TIMER),
    ("flashlight", Capability.FLASHLIGHT),
    ("notification", Capability.LOCAL_NOTIFICATIONS),
)


def parse_version(version: str) -> int:
    """Leading integer of a dotted version string, 1 when there is none"""
    head = (version or "").strip().split(".")[0]
    return int(head) if head.isdigit() else 1


def infer_capabilities(description: str) -> Tuple[Capability, ...]:
    text = (description or "").lower()
    return tuple(capability for keyword, capability in CAPABILITY_KEYWORDS if keyword in text)


class DesignToSpecCompiler:

    def convert(self, design: AppDesign, owner_id: str = None) -> Spec:
        actions: List[Action] = []
        components = tuple(self._convert(child, actions) for child in design.root_component.children)

        page = Page(
            id=f"page-{design.id}",
            title=design.name,
            layout=PageLayout.SCROLL,
            components=components,
        )

        spec = Spec(
            id=design.id,
            owner_id=owner_id or settings.default_owner_id,
            name=design.name,
            description=design.description,
            category=Category.UTILITY,
            version=parse_version(design.metadata.version),
            pages=(page,),
            capabilities=infer_capabilities(design.description),
            initial_state={},
            actions=tuple(actions),
            created_at=design.metadata.created_at,
            updated_at=design.metadata.updated_at,
        )

        logger.info(
            "compiler.design_to_spec.completed",
            extra={"design_id": design.id, "components": len(components), "actions": len(actions)}
        )
        return spec

    def _convert(self, component: AppComponent, actions: List[Action]) -> Component:
        kind = TYPE_MAP[component.type]
        data = component.data

        label = data.text
        if kind == ComponentType.BUTTON and not label:
            label = "Button"

        action_ids: Tuple[str, ...] = ()
        if kind == ComponentType.BUTTON:
            action = Action(
                id=f"action-{component.id}",
                type=ActionType.SHOW_ALERT,
                params={
                    "title": Value.string(label or "Button"),
                    "message": Value.string(data.action or "Tapped action"),
                },
            )
            actions.append(action)
            action_ids = (action.id,)

        props = ComponentProps(
            text=data.text,
            label=label,
            placeholder=data.placeholder,
            image_url=data.image_url,
            items=tuple(data.items) if data.items is not None else None,
            value=Value.string(data.value) if data.value is not None else None,
            style=self._convert_style(component),
        )

        return Component(
            id=component.id,
            type=kind,
            props=props,
            action_ids=action_ids,
            children=tuple(self._convert(child, actions) for child in component.children),
        )

    def _convert_style(self, component: AppComponent) -> ComponentStyle:
        style = component.style
        return ComponentStyle.model_validate({
            "backgroundColor": style.background_color,
            "textColor": style.text_color,
            "accentColor": style.background_color,
            "fontSize": style.font_size,
            "fontWeight": normalize_font_weight(style.font_weight),
            "cornerRadius": style.border_radius,
            "padding": component.layout.padding.top,
            "spacing": 8,
            "borderWidth": style.border_width,
            "borderColor": style.border_color,
        })


design_to_spec = DesignToSpecCompiler()
