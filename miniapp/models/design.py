"""
Legacy design tree (AppDesign) consumed by the validator, the repair pass
and both compilers, plus ``DesignArena``, a flat id-indexed editing model.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from miniapp.utils.datetime_utils import to_iso_string, utc_now


class DesignEditError(ValueError):
    """Invalid arena edit (unknown id, duplicate id, removing the root)"""


class DesignModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        validate_assignment=True,
    )


class DesignComponentType(str, Enum):
    CONTAINER = "Container"
    TEXT = "Text"
    BUTTON = "Button"
    IMAGE = "Image"
    INPUT = "Input"
    LIST = "List"
    CARD = "Card"
    DIVIDER = "Divider"
    SPACER = "Spacer"


class EdgeInsets(DesignModel):
    top: float = 8
    left: float = 8
    bottom: float = 8
    right: float = 8

    @classmethod
    def uniform(cls, value: float) -> "EdgeInsets":
        return cls(top=value, left=value, bottom=value, right=value)


class LayoutProperties(DesignModel):
    x: float = 0
    y: float = 0
    width: float = 200
    height: float = 100
    padding: EdgeInsets = Field(default_factory=EdgeInsets)
    margin: EdgeInsets = Field(default_factory=lambda: EdgeInsets.uniform(0))


class ShadowProperties(DesignModel):
    color: str = "#000000"
    radius: float = 4
    offset_x: float = 0
    offset_y: float = 2


class StyleProperties(DesignModel):
    background_color: str = "#FFFFFF"
    text_color: str = "#000000"
    font_size: float = 16
    font_weight: str = "normal"
    font_family: str = "system"
    border_radius: float = 0
    border_width: float = 0
    border_color: str = "#000000"
    opacity: float = 1.0
    shadow: Optional[ShadowProperties] = None


class ComponentData(DesignModel):
    text: Optional[str] = None
    placeholder: Optional[str] = None
    image_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("imageURL", "imageUrl", "image_url"),
        serialization_alias="imageURL",
    )
    action: Optional[str] = None
    items: Optional[List[str]] = None
    value: Optional[str] = None


class AppComponent(DesignModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: DesignComponentType
    layout: LayoutProperties = Field(default_factory=LayoutProperties)
    style: StyleProperties = Field(default_factory=StyleProperties)
    data: ComponentData = Field(default_factory=ComponentData)
    children: List["AppComponent"] = Field(default_factory=list)
    parent_id: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def case_insensitive_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            for member in DesignComponentType:
                if member.value.lower() == v.strip().lower():
                    return member
        return v

    def walk(self) -> Iterator["AppComponent"]:
        """Pre-order traversal, children in their original order"""
        yield self
        for child in self.children:
            yield from child.walk()


class DesignMetadata(DesignModel):
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: str = "1.0.0"
    author: Optional[str] = None

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, v: datetime) -> str:
        return to_iso_string(v)


class AppDesign(DesignModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    root_component: AppComponent
    global_styles: Dict[str, StyleProperties] = Field(default_factory=dict)
    metadata: DesignMetadata = Field(default_factory=DesignMetadata)

    def components(self) -> Iterator[AppComponent]:
        return self.root_component.walk()

    def touch(self) -> None:
        self.metadata.updated_at = utc_now()


AppComponent.model_rebuild()


# ============================================================================
# ARENA
# ============================================================================

class DesignArena:
    """
    Flat editing model for a component tree.

    Nodes are stored without their children, keyed by id; structure lives in
    explicit ``children`` / ``parents`` id maps. Single-node edits are a dict
    lookup instead of a recursive rebuild of the nested tree.
    """

    def __init__(self, root: AppComponent):
        self.root_id = root.id
        self.nodes: Dict[str, AppComponent] = {}
        self.children: Dict[str, List[str]] = {}
        self.parents: Dict[str, Optional[str]] = {}
        self._index(root, None)

    def _index(self, component: AppComponent, parent_id: Optional[str]) -> None:
        if component.id in self.nodes:
            raise DesignEditError(f"Duplicate component id '{component.id}'")
        self.nodes[component.id] = component.model_copy(update={"children": []}, deep=True)
        self.children[component.id] = []
        self.parents[component.id] = parent_id
        if parent_id is not None:
            self.children[parent_id].append(component.id)
        for child in component.children:
            self._index(child, component.id)

    def __contains__(self, component_id: str) -> bool:
        return component_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, component_id: str) -> AppComponent:
        try:
            return self.nodes[component_id]
        except KeyError:
            raise DesignEditError(f"Unknown component id '{component_id}'") from None

    def add(
        self,
        component: AppComponent,
        parent_id: Optional[str] = None,
        index: Optional[int] = None,
    ) -> str:
        """Insert ``component`` (with its subtree) under ``parent_id``, the root by default"""
        parent_id = parent_id or self.root_id
        if parent_id not in self.nodes:
            raise DesignEditError(f"Unknown parent id '{parent_id}'")
        ids = [node.id for node in component.walk()]
        clashes = [i for i in ids if i in self.nodes]
        if clashes or len(set(ids)) != len(ids):
            raise DesignEditError(f"Duplicate component id(s): {clashes or ids}")

        self._index(component, parent_id)
        if index is not None:
            siblings = self.children[parent_id]
            siblings.remove(component.id)
            siblings.insert(index, component.id)
        return component.id

    def remove(self, component_id: str) -> AppComponent:
        """Detach and return the subtree rooted at ``component_id``"""
        if component_id == self.root_id:
            raise DesignEditError("The root component cannot be removed")
        subtree = self._build(self.get(component_id).id)
        parent_id = self.parents[component_id]
        if parent_id is not None:
            self.children[parent_id].remove(component_id)
        for node in subtree.walk():
            del self.nodes[node.id]
            del self.children[node.id]
            del self.parents[node.id]
        subtree.parent_id = None
        return subtree

    def update(self, component_id: str, **changes: Any) -> AppComponent:
        """Replace top-level fields of one node; structure is edited with add/remove"""
        if "id" in changes or "children" in changes:
            raise DesignEditError("id and children cannot be changed through update")
        data = self.get(component_id).model_dump()
        data.update(changes)
        self.nodes[component_id] = AppComponent.model_validate(data)
        return self.nodes[component_id]

    def move(self, component_id: str, new_parent_id: str) -> None:
        if new_parent_id == component_id or new_parent_id in self._descendants(component_id):
            raise DesignEditError("A component cannot be moved into its own subtree")
        subtree = self.remove(component_id)
        self.add(subtree, new_parent_id)

    def _descendants(self, component_id: str) -> List[str]:
        found: List[str] = []
        stack = list(self.children.get(component_id, []))
        while stack:
            current = stack.pop()
            found.append(current)
            stack.extend(self.children[current])
        return found

    def _build(self, component_id: str) -> AppComponent:
        node = self.nodes[component_id].model_copy(deep=True)
        node.children = [self._build(child_id) for child_id in self.children[component_id]]
        for child in node.children:
            child.parent_id = component_id
        return node

    def to_component(self) -> AppComponent:
        """Nested tree in original child order, parent ids filled in"""
        root = self._build(self.root_id)
        root.parent_id = None
        return root

    def apply_to(self, design: AppDesign) -> AppDesign:
        """Copy of ``design`` with the arena's tree as root and a fresh timestamp"""
        result = design.model_copy(deep=True)
        result.root_component = self.to_component()
        result.touch()
        return result
