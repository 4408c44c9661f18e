"""
Offline design builder.

Used whenever the remote spec generator is unavailable:
- keyword based intent recognition
- requirement extraction from free text (curated templates first)
- AppDesign construction from a template or from the requirement list
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from miniapp.llm.base import GenerationError, GenerationErrorKind
from miniapp.models.design import (
    AppComponent,
    AppDesign,
    ComponentData,
    DesignComponentType,
    DesignMetadata,
    LayoutProperties,
    ShadowProperties,
    StyleProperties,
)
from miniapp.utils.logging import get_logger

logger = get_logger(__name__)

CANVAS_WIDTH = 375
CANVAS_MIN_HEIGHT = 812
CONTENT_X = 16
CONTENT_WIDTH = 343
SECTION_GAP = 12
MAX_REQUIREMENTS = 8


# ============================================================================
# INTENT
# ============================================================================

class IntentKind(str, Enum):
    BUILD_APP = "build_app"
    MODIFY_APP = "modify_app"
    GENERAL_CHAT = "general_chat"


@dataclass
class UserIntent:
    kind: IntentKind
    description: str = ""
    requirements: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.kind == IntentKind.BUILD_APP:
            return f"build_app ({len(self.requirements)} requirements)"
        return self.kind.value


BUILD_KEYWORDS = ["build", "create", "make", "design", "app", "application", "website", "web app"]
MODIFY_KEYWORDS = ["modify", "change", "update", "edit", "fix", "improve"]


def recognize_intent(message: str) -> UserIntent:
    lowered = message.lower()
    if any(keyword in lowered for keyword in BUILD_KEYWORDS):
        return UserIntent(
            kind=IntentKind.BUILD_APP,
            description=message,
            requirements=requirement_parser.parse_requirements(message),
        )
    if any(keyword in lowered for keyword in MODIFY_KEYWORDS):
        return UserIntent(kind=IntentKind.MODIFY_APP, description=message)
    return UserIntent(kind=IntentKind.GENERAL_CHAT, description=message)


# ============================================================================
# TEMPLATES
# ============================================================================

@dataclass(frozen=True)
class Palette:
    background: str
    primary: str


DEFAULT_PALETTE = Palette(background="#F5F7FB", primary="#2563EB")

# Section tuples:
#   ("text", text, height, font_size, font_weight, text_color)
#   ("list", items, height)
#   ("input", placeholder)
@dataclass(frozen=True)
class Template:
    id: str
    keywords: Tuple[str, ...]
    title: str
    requirements: Tuple[str, ...]
    palette: Palette
    cta: str
    sections: Tuple[tuple, ...]


TEMPLATES: Tuple[Template, ...] = (
    Template(
        id="clock",
        keywords=("clock", "time", "timer", "alarm"),
        title="Clock Control Center",
        requirements=(
            "Hero clock showing current hour, minute, and seconds in large type",
            "Secondary card that displays today's date, weekday, and timezone",
            "Row of quick actions for Start Timer, New Alarm, and Focus Session",
            "List of saved world clocks with city labels and time deltas",
            "CTA card for creating a new alarm with repeat options",
        ),
        palette=Palette(background="#EEF3FF", primary="#2563EB"),
        cta="Add new alarm",
        sections=(
            ("text", "Clock Control Center", 48, 30, "bold", "#0F172A"),
            ("text", "San Francisco, CA", 32, 18, "semibold", "#475569"),
            ("text", "Monday, Jul 8 • 10:24 AM", 40, 24, "semibold", "#0F172A"),
            ("list", ("New York • 1:24 PM", "London • 6:24 PM", "Tokyo • 2:24 AM"), 168),
            ("list", ("06:30 • Wake up alarm", "12:00 • Lunch reminder", "18:00 • Wind-down alarm"), 168),
        ),
    ),
    Template(
        id="weather",
        keywords=("weather", "forecast", "temperature", "climate"),
        title="Weather Snapshot",
        requirements=(
            "Hero section with current temperature, condition icon, and location",
            "Hourly forecast row showing next 6 hours with mini charts",
            "Detailed metrics card covering humidity, wind, and UV index",
            "Weekly forecast list with day labels and hi/lo temperatures",
            "Prompt to enable severe weather alerts",
        ),
        palette=Palette(background="#F2FAFF", primary="#0EA5E9"),
        cta="Enable alerts",
        sections=(
            ("text", "Weather Snapshot", 48, 28, "bold", "#0F172A"),
            ("text", "Seattle, WA", 32, 18, "semibold", "#0369A1"),
            ("text", "72° • Sunny", 60, 42, "bold", "#0F172A"),
            ("text", "Feels like 74° • Humidity 52% • Wind 6 mph", 36, 16, "regular", "#0F172A"),
            ("list", ("1 PM • 72°", "3 PM • 74°", "5 PM • 69°", "7 PM • 65°"), 196),
            ("list", ("UV Index • Moderate", "Humidity • 52%", "Visibility • 9 miles"), 150),
        ),
    ),
    Template(
        id="todo",
        keywords=("todo", "task", "productivity", "list", "planner"),
        title="Focus Taskboard",
        requirements=(
            "Summary card showing tasks left, completed, and streak",
            "Input field to capture a new task with due date picker",
            "Priority list segmented by Today, Upcoming, and Someday",
            "Progress tracker bar with percentage complete",
            "CTA button to start focus timer for the top task",
        ),
        palette=Palette(background="#F8F9FB", primary="#7C3AED"),
        cta="Start focus session",
        sections=(
            ("text", "Focus Taskboard", 48, 28, "bold", "#111827"),
            ("text", "3 tasks left • 1 due today", 32, 18, "semibold", "#4C1D95"),
            ("input", "Add a new task..."),
            ("list", ("Design review with product", "Update onboarding checklist", "Plan sprint retro agenda"), 168),
            ("list", ("Progress • 65%", "Focus streak • 4 days", "Next break • 25 min"), 150),
        ),
    ),
    Template(
        id="finance",
        keywords=("finance", "budget", "expense", "money", "invoice"),
        title="Money Dashboard",
        requirements=(
            "Balance overview card with income vs expenses delta",
            "Chart card visualizing spending by category",
            "List of latest transactions with amount badges",
            "Filter chips for Month, Quarter, Year",
            "CTA to create a new invoice",
        ),
        palette=Palette(background="#F5FBF7", primary="#16A34A"),
        cta="Create invoice",
        sections=(
            ("text", "Money Dashboard", 48, 28, "bold", "#064E3B"),
            ("text", "Balance • $24,830", 36, 20, "semibold", "#14532D"),
            ("text", "Income $8,200 • Expenses $3,420 • +12% vs last month", 40, 16, "regular", "#14532D"),
            ("list", (
                "Design contract • +$2,400",
                "Cloud provider • -$640",
                "Advertising • -$320",
                "Subscription revenue • +$980",
            ), 212),
            ("list", ("Filters • Month, Quarter, Year", "Forecast • On track", "Next invoice • Due Fri"), 150),
        ),
    ),
    Template(
        id="fitness",
        keywords=("fitness", "workout", "health", "steps", "run", "exercise"),
        title="Fitness Companion",
        requirements=(
            "Hero stats card with calories, steps, and move ring",
            "Workout history list highlighting most recent sessions",
            "Goals card with editable targets for the week",
            "Hydration tracker with water intake chips",
            "CTA button to start a new workout",
        ),
        palette=Palette(background="#FDF7F3", primary="#FB923C"),
        cta="Start workout",
        sections=(
            ("text", "Fitness Companion", 48, 28, "bold", "#9A3412"),
            ("text", "Calories 540 • Steps 8,120 • Move ring 78%", 40, 18, "semibold", "#7C2D12"),
            ("list", (
                "HIIT • 28 min • 320 kcal",
                "Yoga flow • 18 min • 120 kcal",
                "Outdoor walk • 35 min • 210 kcal",
            ), 180),
            ("list", ("Weekly goal • 5 workouts", "Hydration • 48 oz / 80 oz", "Recovery • Good"), 168),
        ),
    ),
    Template(
        id="recipe",
        keywords=("recipe", "cooking", "meal", "kitchen", "food"),
        title="Chef Companion",
        requirements=(
            "Hero recipe card with dish photo and cook time",
            "Ingredient checklist with toggles",
            "Step-by-step instructions list with timers",
            "Nutrition facts panel",
            "CTA to save recipe to favorites",
        ),
        palette=Palette(background="#FFF8F0", primary="#EA580C"),
        cta="Save to favorites",
        sections=(
            ("text", "Chef Companion", 48, 28, "bold", "#9A3412"),
            ("text", "Mediterranean Grain Bowl • 35 min", 40, 18, "semibold", "#7C2D12"),
            ("text", "Serves 2 • 640 kcal • Prep 15 • Cook 20", 36, 16, "regular", "#7C2D12"),
            ("list", ("1 cup quinoa", "Roasted chickpeas", "Cucumber ribbons", "Herbed yogurt dressing"), 196),
            ("list", (
                "Cook quinoa until fluffy",
                "Roast chickpeas with paprika",
                "Layer greens, grains, veggies",
                "Finish with dressing and mint",
            ), 196),
        ),
    ),
)


def match_template(message: str) -> Optional[Template]:
    """Template with the most keyword hits, first one wins ties"""
    lowered = message.lower()
    scores: Dict[str, int] = {}
    for template in TEMPLATES:
        score = sum(1 for keyword in template.keywords if keyword in lowered)
        if score > 0:
            scores[template.id] = score
    if not scores:
        return None
    best_id = max(scores.items(), key=lambda x: x[1])[0]
    return next(t for t in TEMPLATES if t.id == best_id)


def capitalized_sentence(text: str) -> str:
    trimmed = text.strip()
    if not trimmed:
        return "Untitled"
    return trimmed[0].upper() + trimmed[1:]


# ============================================================================
# REQUIREMENTS
# ============================================================================

class RequirementParser:

    def parse_requirements(self, message: str) -> List[str]:
        template = match_template(message)
        if template is not None:
            return list(template.requirements)

        whole = message.strip().lower()
        pieces: List[str] = []
        for raw in re.split(r"[.\n,\-]", message):
            piece = raw.strip()
            if len(piece) > 4 and piece not in pieces and piece.lower() != whole:
                pieces.append(piece)

        if not pieces:
            return self.fallback_requirements(message)

        sanitized = [self._sanitize(p) for p in pieces[:MAX_REQUIREMENTS]]
        expanded = self._expand(sanitized)
        return expanded or self.fallback_requirements(message)

    def fallback_requirements(self, message: str) -> List[str]:
        lowered = message.lower()
        if "dashboard" in lowered:
            return [
                "Hero header with quick stats",
                "Metrics cards with mini trend lines",
                "Filterable activity list",
                "Primary action button for creating a record",
            ]
        if "chat" in lowered:
            return [
                "Conversation list with unread badges",
                "Message composer with send button",
                "Scrollable history with timestamp chips",
            ]
        return [
            "Intro section describing the product value",
            "Feature list with icons",
            "Call-to-action button that stays visible",
            "Feedback area with form inputs",
        ]

    def _sanitize(self, text: str) -> str:
        trimmed = text.strip()
        if not trimmed:
            return "Simple UI element"
        return trimmed[:-1] if trimmed.endswith(":") else trimmed

    def _expand(self, requirements: List[str]) -> List[str]:
        enriched: List[str] = []
        for requirement in requirements:
            lowered = requirement.lower()
            if "clock" in lowered or "time" in lowered:
                enriched += [
                    "Large digital clock showing the current time clearly",
                    "Analog clock visualization with ticking seconds ring",
                    "Timezone selector to switch between saved cities",
                ]
            elif "alarm" in lowered or "reminder" in lowered:
                enriched += [
                    "Alarm editor with fields for title, time, and repeat",
                    "List of active alarms with toggle switches",
                ]
            elif "list" in lowered or "feed" in lowered:
                enriched.append(
                    f"Scrollable card list titled {capitalized_sentence(requirement)} with avatars and metadata"
                )
            else:
                enriched.append(capitalized_sentence(requirement))

        seen = set()
        unique = []
        for item in enriched:
            if item.lower() not in seen:
                seen.add(item.lower())
                unique.append(item)
        return unique[:MAX_REQUIREMENTS]


# ============================================================================
# DESIGN BUILDER
# ============================================================================

def _style(
    background: str,
    text: str,
    font_size: float = 16,
    font_weight: str = "regular",
    radius: float = 0,
    border_width: float = 0,
    border_color: str = "#000000",
    shadow: Optional[ShadowProperties] = None,
) -> StyleProperties:
    return StyleProperties(
        background_color=background,
        text_color=text,
        font_size=font_size,
        font_weight=font_weight,
        font_family="system",
        border_radius=radius,
        border_width=border_width,
        border_color=border_color,
        opacity=1.0,
        shadow=shadow,
    )


def _component(
    kind: DesignComponentType,
    y: float,
    height: float,
    style: StyleProperties,
    **data,
) -> AppComponent:
    return AppComponent(
        type=kind,
        layout=LayoutProperties(x=CONTENT_X, y=y, width=CONTENT_WIDTH, height=height),
        style=style,
        data=ComponentData(**data),
    )


def _shadow(color: str, radius: float, offset_y: float) -> ShadowProperties:
    return ShadowProperties(color=color, radius=radius, offset_x=0, offset_y=offset_y)


class LocalDesignBuilder:

    def build_design(self, description: str, requirements: List[str]) -> AppDesign:
        """
        Raises:
            GenerationError: PARSE_FAILED when there is neither a matching
                template nor any requirement to build from
        """
        template = match_template(description)
        if template is not None:
            design = self._template_design(template, description)
        elif not requirements:
            raise GenerationError(
                GenerationErrorKind.PARSE_FAILED,
                detail="Unable to generate a usable design from the provided prompt",
            )
        else:
            design = self._generic_design(description, requirements)

        logger.info(
            "🛡️ local_builder.design.built",
            extra={
                "template": template.id if template else None,
                "components": len(design.root_component.children),
            }
        )
        return design

    def _template_design(self, template: Template, description: str) -> AppDesign:
        palette = template.palette
        children: List[AppComponent] = []
        y = 32.0

        for section in template.sections:
            if section[0] == "text":
                _, text, height, font_size, weight, color = section
                children.append(_component(
                    DesignComponentType.TEXT, y, height,
                    _style(palette.background, color, font_size, weight),
                    text=text,
                ))
            elif section[0] == "list":
                _, items, height = section
                children.append(_component(
                    DesignComponentType.LIST, y, height,
                    _style("#FFFFFF", "#0F172A", radius=24, shadow=_shadow("#0F172A", 10, 4)),
                    items=list(items),
                ))
            else:
                height = 64
                children.append(_component(
                    DesignComponentType.INPUT, y, height,
                    _style("#FFFFFF", "#0F172A", radius=16, border_width=1, border_color="#CBD5F5"),
                    placeholder=section[1],
                ))
            y += height + SECTION_GAP

        children.append(self._primary_button(template.cta, y, palette.primary))
        content_height = max(c.layout.y + c.layout.height for c in children)

        return self._wrap(
            name=template.title,
            description=f"Generated {template.title.lower()} experience for: {description}",
            children=children,
            height=max(CANVAS_MIN_HEIGHT, content_height + 32),
            palette=palette,
            author=f"Template: {template.title}",
        )

    def _generic_design(self, description: str, requirements: List[str]) -> AppDesign:
        palette = DEFAULT_PALETTE
        children: List[AppComponent] = []
        y = 24.0

        title = _component(
            DesignComponentType.TEXT, y, 72,
            _style("#F5F7FB", "#0F172A", 28, "bold"),
            text=capitalized_sentence(make_title(description)),
        )
        children.append(title)
        y += title.layout.height + SECTION_GAP

        for requirement in requirements:
            section = self._section_for(requirement, y)
            children.append(section)
            y += section.layout.height + SECTION_GAP

        cta = self._primary_button("Try the prototype", y, palette.primary)
        children.append(cta)
        y += cta.layout.height + 24

        return self._wrap(
            name=make_name(description),
            description=f"Pure front-end build derived from: {description}",
            children=children,
            height=max(CANVAS_MIN_HEIGHT, y),
            palette=palette,
            author="Local Builder",
        )

    def _section_for(self, requirement: str, y: float) -> AppComponent:
        lowered = requirement.lower()
        text = capitalized_sentence(requirement)

        if any(k in lowered for k in ("list", "feed", "activity")):
            return _component(
                DesignComponentType.LIST, y, 200,
                _style("#FFFFFF", "#0F172A", radius=24, shadow=_shadow("#0F172A", 10, 4)),
                text=text,
                items=list_items(requirement),
            )
        if any(k in lowered for k in ("input", "form", "field")):
            return _component(
                DesignComponentType.INPUT, y, 64,
                _style("#FFFFFF", "#0F172A", radius=16, border_width=1, border_color="#D1D5DB"),
                placeholder=placeholder_for(requirement),
            )
        if any(k in lowered for k in ("button", "cta", "action")):
            return _component(
                DesignComponentType.BUTTON, y, 52,
                _style("#E0E7FF", "#2563EB", font_weight="semibold", radius=16,
                       border_width=1, border_color="#2563EB"),
                text=text,
            )
        if "chart" in lowered or "stat" in lowered:
            return _component(
                DesignComponentType.CARD, y, 120,
                _style("#111827", "#F9FAFB", 18, "semibold", radius=24, shadow=_shadow("#0F172A", 16, 8)),
                text=text,
            )
        return _component(
            DesignComponentType.CARD, y, 140,
            _style("#FFFFFF", "#111827", radius=24, shadow=_shadow("#0F172A", 12, 6)),
            text=text,
        )

    def _primary_button(self, text: str, y: float, primary: str) -> AppComponent:
        return _component(
            DesignComponentType.BUTTON, y, 56,
            _style(primary, "#FFFFFF", 18, "semibold", radius=18, border_color=primary,
                   shadow=_shadow(primary, 12, 6)),
            text=capitalized_sentence(text),
        )

    def _wrap(
        self,
        name: str,
        description: str,
        children: List[AppComponent],
        height: float,
        palette: Palette,
        author: str,
    ) -> AppDesign:
        root = AppComponent(
            type=DesignComponentType.CONTAINER,
            layout=LayoutProperties(width=CANVAS_WIDTH, height=height),
            style=StyleProperties(background_color=palette.background),
            children=children,
        )
        for child in children:
            child.parent_id = root.id

        return AppDesign(
            name=name,
            description=description,
            root_component=root,
            global_styles={
                "primaryButton": _style(palette.primary, "#FFFFFF", 18, "semibold", radius=18,
                                        border_color=palette.primary,
                                        shadow=_shadow(palette.primary, 16, 6)),
                "bodyText": _style("#F5F7FB", "#0F172A"),
            },
            metadata=DesignMetadata(version="1.0.0", author=author),
        )


def make_title(description: str) -> str:
    template = match_template(description)
    if template is not None:
        return template.title
    cleaned = re.sub(r"(?i)build (me|us|a|an)\s+", "", description)
    cleaned = re.sub(r"(?i)please\s+", "", cleaned).strip()
    if not cleaned:
        return "Custom Prototype"
    return capitalized_sentence(re.split(r"[.!?]", cleaned)[0])


def make_name(description: str) -> str:
    words = [w.capitalize() for w in description.split()[:3]]
    return f"{' '.join(words)} Prototype" if words else "Generated App"


def placeholder_for(requirement: str) -> str:
    lowered = requirement.lower()
    if "email" in lowered:
        return "Email address"
    if "name" in lowered:
        return "Full name"
    if "search" in lowered:
        return "Search…"
    return "Enter details"


def list_items(requirement: str) -> List[str]:
    tokens = requirement.split()
    if len(tokens) >= 6:
        return [
            capitalized_sentence(" ".join(tokens[i:i + 3]))
            for i in range(0, min(len(tokens), 12), 3)
        ]
    return ["Sample item one", "Sample item two", "Sample item three"]


requirement_parser = RequirementParser()
local_design_builder = LocalDesignBuilder()
