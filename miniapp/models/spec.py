"""
MiniApp DSL schema.

Immutable models for Spec, Page, Component, props/style, bindings and
actions. Field names on the wire are camelCase; decoding is lenient so that
older or partially generated documents still load:

- missing ids are generated, missing lists and maps default to empty
- unknown page layouts and categories fall back to their defaults
- capability strings are normalized, unknown ones are dropped
- malformed numeric style values are replaced by the style defaults
"""
import json
import math
import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from miniapp.models.value import JSONValue, Value
from miniapp.services.compiler.fonts import normalize_font_weight
from miniapp.utils.datetime_utils import ensure_utc, to_iso_string, utc_now
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


class SpecDecodeError(ValueError):
    """Raised when a spec document cannot be decoded at all"""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


# ============================================================================
# ENUMS
# ============================================================================

class Category(str, Enum):
    UTILITY = "utility"
    LEARNING = "learning"
    PRODUCTIVITY = "productivity"
    WELLNESS = "wellness"
    ENTERTAINMENT = "entertainment"
    FINANCE = "finance"


class PageLayout(str, Enum):
    SCROLL = "scroll"
    CENTER = "center"
    GRID = "grid"


class ComponentType(str, Enum):
    CONTAINER = "container"
    LABEL = "label"
    BUTTON = "button"
    TOGGLE = "toggle"
    IMAGE = "image"
    TIMER_DISPLAY = "timerDisplay"
    LIST = "list"
    INPUT = "input"
    QUIZ_QUESTION = "quizQuestion"
    SPACER = "spacer"


class LayoutHint(str, Enum):
    BLOCK = "block"
    INLINE = "inline"
    HERO = "hero"


class ActionType(str, Enum):
    NAVIGATE = "NAVIGATE"
    TOGGLE_FLASHLIGHT = "TOGGLE_FLASHLIGHT"
    START_TIMER = "START_TIMER"
    SHOW_ALERT = "SHOW_ALERT"
    SET_STATE = "SET_STATE"


class Capability(str, Enum):
    FLASHLIGHT = "FLASHLIGHT"
    TIMER = "TIMER"
    LOCAL_NOTIFICATIONS = "LOCAL_NOTIFICATIONS"
    HAPTICS = "HAPTICS"


CAPABILITY_ALIASES = {
    "LOCALNOTIFICATIONS": Capability.LOCAL_NOTIFICATIONS,
    "NOTIFICATIONS": Capability.LOCAL_NOTIFICATIONS,
    "HAPTIC": Capability.HAPTICS,
}


def normalize_capability(raw: Any) -> Optional[Capability]:
    """Map a loosely written capability name to the enum, None if unknown"""
    if isinstance(raw, Capability):
        return raw
    if not isinstance(raw, str):
        return None
    key = raw.strip().upper().replace("-", "_").replace(" ", "_")
    if key in CAPABILITY_ALIASES:
        return CAPABILITY_ALIASES[key]
    try:
        return Capability(key)
    except ValueError:
        return None


def _lenient_enum(enum_cls, raw: Any, default):
    if isinstance(raw, enum_cls):
        return raw
    if isinstance(raw, str):
        for member in enum_cls:
            if member.value.lower() == raw.strip().lower():
                return member
    return default


# ============================================================================
# BASE
# ============================================================================

class SpecModel(BaseModel):
    """Frozen camelCase wire model"""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=False,
    )


# ============================================================================
# STYLE / PROPS
# ============================================================================

STYLE_DEFAULTS: Dict[str, Any] = {
    "background_color": "#FFFFFF",
    "text_color": "#0F172A",
    "accent_color": "#2563EB",
    "font_size": 16.0,
    "font_weight": 400.0,
    "corner_radius": 14.0,
    "padding": 12.0,
    "spacing": 8.0,
    "border_width": 0.0,
    "border_color": "#000000",
}

NUMERIC_STYLE_FIELDS = (
    "font_size", "font_weight", "corner_radius", "padding", "spacing", "border_width",
)
COLOR_STYLE_FIELDS = ("background_color", "text_color", "accent_color", "border_color")


def finite_or(raw: Any, fallback: float) -> float:
    """``raw`` as a finite float, otherwise ``fallback``"""
    if isinstance(raw, bool):
        return fallback
    if isinstance(raw, (int, float)):
        try:
            number = float(raw)
        except OverflowError:
            return fallback
    elif isinstance(raw, str):
        try:
            number = float(raw.strip())
        except ValueError:
            return fallback
    else:
        return fallback
    return number if math.isfinite(number) else fallback


class ComponentStyle(SpecModel):
    background_color: str = STYLE_DEFAULTS["background_color"]
    text_color: str = STYLE_DEFAULTS["text_color"]
    accent_color: str = STYLE_DEFAULTS["accent_color"]
    font_size: float = STYLE_DEFAULTS["font_size"]
    font_weight: float = STYLE_DEFAULTS["font_weight"]
    corner_radius: float = STYLE_DEFAULTS["corner_radius"]
    padding: float = STYLE_DEFAULTS["padding"]
    spacing: float = STYLE_DEFAULTS["spacing"]
    border_width: float = STYLE_DEFAULTS["border_width"]
    border_color: str = STYLE_DEFAULTS["border_color"]

    @model_validator(mode="before")
    @classmethod
    def sanitize(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        cleaned: Dict[str, Any] = {}
        for name in STYLE_DEFAULTS:
            camel = to_camel(name)
            raw = data.get(camel, data.get(name))
            if raw is None:
                continue
            if name == "font_weight" and isinstance(raw, str):
                cleaned[name] = normalize_font_weight(raw)
            elif name in NUMERIC_STYLE_FIELDS:
                cleaned[name] = finite_or(raw, STYLE_DEFAULTS[name])
            elif isinstance(raw, str):
                cleaned[name] = raw
        return cleaned


def _text_items(raw: Any) -> Any:
    if raw is None or not isinstance(raw, (list, tuple)):
        return raw
    return tuple(
        item if isinstance(item, str) else (Value.of(item).as_string() or json.dumps(item))
        for item in raw
    )


class ComponentProps(SpecModel):
    text: Optional[str] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    image_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("imageURL", "imageUrl", "image_url"),
        serialization_alias="imageURL",
    )
    items: Optional[Tuple[str, ...]] = None
    options: Optional[Tuple[str, ...]] = None
    value: Optional[JSONValue] = None
    style: ComponentStyle = Field(default_factory=ComponentStyle)
    layout_hint: LayoutHint = LayoutHint.BLOCK

    @field_validator("items", "options", mode="before")
    @classmethod
    def coerce_items(cls, v: Any) -> Any:
        return _text_items(v)

    @field_validator("style", mode="before")
    @classmethod
    def default_style(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("layout_hint", mode="before")
    @classmethod
    def lenient_hint(cls, v: Any) -> LayoutHint:
        return _lenient_enum(LayoutHint, v, LayoutHint.BLOCK)


# ============================================================================
# COMPONENTS / PAGES / ACTIONS
# ============================================================================

class Binding(SpecModel):
    """Association between a component and the state key it reads and writes"""
    state_key: str

    @model_validator(mode="before")
    @classmethod
    def accept_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"stateKey": data}
        if isinstance(data, Mapping) and "stateKey" not in data and "state_key" not in data:
            if "key" in data:
                return {"stateKey": data["key"]}
        return data


class Component(SpecModel):
    id: str = Field(default_factory=new_id)
    type: ComponentType
    props: ComponentProps = Field(default_factory=ComponentProps)
    bindings: Optional[Binding] = Field(
        default=None,
        validation_alias=AliasChoices("bindings", "binding"),
        serialization_alias="bindings",
    )
    action_ids: Tuple[str, ...] = ()
    children: Tuple["Component", ...] = ()

    @field_validator("id", mode="before")
    @classmethod
    def generate_missing_id(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return new_id()
        return str(v)

    @field_validator("props", mode="before")
    @classmethod
    def default_props(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("action_ids", "children", mode="before")
    @classmethod
    def default_sequence(cls, v: Any) -> Any:
        return () if v is None else v

    @model_validator(mode="after")
    def reject_self_reference(self) -> "Component":
        for child in self.children:
            if child.id == self.id:
                raise ValueError(f"component '{self.id}' lists itself as a child")
        return self

    @property
    def state_key(self) -> str:
        """Bound state key, the component id when unbound"""
        return self.bindings.state_key if self.bindings else self.id

    def walk(self) -> Iterator["Component"]:
        """Depth-first, pre-order, children in declared order"""
        yield self
        for child in self.children:
            yield from child.walk()


class Page(SpecModel):
    id: str
    title: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("title", "name"),
        serialization_alias="title",
    )
    layout: PageLayout = PageLayout.SCROLL
    components: Tuple[Component, ...] = ()

    @field_validator("layout", mode="before")
    @classmethod
    def lenient_layout(cls, v: Any) -> PageLayout:
        return _lenient_enum(PageLayout, v, PageLayout.SCROLL)

    @field_validator("components", mode="before")
    @classmethod
    def default_components(cls, v: Any) -> Any:
        return () if v is None else v

    def walk(self) -> Iterator[Component]:
        for component in self.components:
            yield from component.walk()


class Action(SpecModel):
    id: str = Field(default_factory=new_id)
    type: ActionType
    params: Dict[str, JSONValue] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def generate_missing_id(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return new_id()
        return str(v)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            text = v.strip()
            if any(ch.islower() for ch in text):
                # showAlert -> SHOW_ALERT
                text = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", text)
            return text.upper().replace("-", "_").replace(" ", "_")
        return v

    @field_validator("params", mode="before")
    @classmethod
    def default_params(cls, v: Any) -> Any:
        return {} if v is None else v

    def param(self, name: str) -> Optional[Value]:
        return self.params.get(name)


class Alert(SpecModel):
    title: str
    message: str


# ============================================================================
# SPEC ROOT
# ============================================================================

class Spec(SpecModel):
    id: str = Field(default_factory=new_id)
    owner_id: str = "user"
    name: str
    description: str = ""
    category: Category = Category.UTILITY
    version: int = 1
    pages: Tuple[Page, ...] = ()
    capabilities: Tuple[Capability, ...] = ()
    initial_state: Dict[str, JSONValue] = Field(default_factory=dict)
    actions: Tuple[Action, ...] = ()
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("id", mode="before")
    @classmethod
    def generate_missing_id(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return new_id()
        return str(v)

    @field_validator("category", mode="before")
    @classmethod
    def lenient_category(cls, v: Any) -> Category:
        return _lenient_enum(Category, v, Category.UTILITY)

    @field_validator("version", mode="before")
    @classmethod
    def lenient_version(cls, v: Any) -> Any:
        if v is None:
            return 1
        if isinstance(v, str):
            head = v.strip().split(".")[0]
            return int(head) if head.isdigit() else 1
        if isinstance(v, float) and math.isfinite(v):
            return int(v)
        return v

    @field_validator("capabilities", mode="before")
    @classmethod
    def normalize_capabilities(cls, v: Any) -> Any:
        if v is None:
            return ()
        if not isinstance(v, (list, tuple, set)):
            return v
        result: List[Capability] = []
        for raw in v:
            capability = normalize_capability(raw)
            if capability is None:
                logger.warning(
                    "spec.capability.dropped",
                    message=f"Unknown capability '{raw}' dropped",
                    extra={"value": raw},
                )
                continue
            if capability not in result:
                result.append(capability)
        return tuple(result)

    @field_validator("pages", "actions", mode="before")
    @classmethod
    def default_sequence(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("initial_state", mode="before")
    @classmethod
    def default_state(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def default_timestamp(cls, v: Any) -> Any:
        return utc_now() if v is None else v

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, v: datetime) -> str:
        return to_iso_string(v)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def page(self, page_id: str) -> Optional[Page]:
        return next((p for p in self.pages if p.id == page_id), None)

    def action(self, action_id: str) -> Optional[Action]:
        return next((a for a in self.actions if a.id == action_id), None)

    def components(self) -> Iterator[Component]:
        for page in self.pages:
            yield from page.walk()


Component.model_rebuild()


# ============================================================================
# WIRE CODEC
# ============================================================================

def decode_spec(payload: Union[str, bytes, Mapping[str, Any]]) -> Spec:
    """
    Decode a spec document (JSON text or parsed mapping).

    Raises:
        SpecDecodeError: the document is not JSON, not an object, or misses
            a required field that has no default (name, page id, component
            or action type).
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SpecDecodeError(f"Spec is not valid JSON: {e.msg}") from e
        except ValueError as e:
            # integer literals past the interpreter digit limit
            raise SpecDecodeError(f"Spec is not valid JSON: {e}") from e

    if not isinstance(payload, Mapping):
        raise SpecDecodeError("Spec document must be a JSON object")

    try:
        return Spec.model_validate(payload)
    except ValidationError as e:
        logger.warning(
            "spec.decode.failed",
            extra={"error_count": e.error_count()},
        )
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise SpecDecodeError(
            f"Spec document could not be decoded ({e.error_count()} errors)",
            errors=errors,
        ) from e


def encode_spec(spec: Spec) -> Dict[str, Any]:
    """Wire representation of ``spec``, the inverse of ``decode_spec``"""
    return spec.model_dump(mode="json", by_alias=True, exclude_none=True)


def encode_spec_json(spec: Spec, indent: Optional[int] = 2) -> str:
    return json.dumps(encode_spec(spec), indent=indent)
