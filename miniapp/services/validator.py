"""
Design and spec validation.

Design validation passes (recursive walk, children in order):
1. Layout dimensions
2. Type specific content checks
3. Structure (dangling parent ids, duplicate ids)
4. Style (colors, opacity, font size)

Findings are data, never exceptions. The quality score is computed by
``ValidationResult.from_issues``.
"""
import re
from collections import Counter
from typing import List, Optional, Set

from miniapp.models.design import AppComponent, AppDesign, DesignComponentType
from miniapp.models.spec import ActionType, ComponentType, Spec
from miniapp.models.validation import Severity, ValidationIssue, ValidationResult
from miniapp.utils.logging import get_logger, log_context

logger = get_logger(__name__)

HEX_COLOR = re.compile(r"#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})")
NAMED_COLORS = {"black", "white", "red", "green", "blue", "transparent"}


def is_valid_color(color: Optional[str]) -> bool:
    """``#RGB``, ``#RRGGBB``, ``#RRGGBBAA`` or one of the named colors"""
    if not isinstance(color, str):
        return False
    return bool(HEX_COLOR.fullmatch(color)) or color.lower() in NAMED_COLORS


COLOR_FIELDS = (
    ("background_color", "background color"),
    ("text_color", "text color"),
    ("border_color", "border color"),
)


class DesignValidator:
    """
    Validates AppDesign trees.

    The same tree always yields the same result: issues are collected in
    walk order and nothing else is consulted.
    """

    def validate(self, design: AppDesign) -> ValidationResult:
        with log_context(design_id=design.id):
            issues: List[ValidationIssue] = []
            all_ids = [c.id for c in design.components()]
            known_ids = set(all_ids)

            self._validate_component(design.root_component, known_ids, issues)
            self._validate_unique_ids(all_ids, issues)

            result = ValidationResult.from_issues(issues)

            if result.is_valid:
                logger.info(
                    "✅ design.validation.passed",
                    extra={"design_id": design.id, "warnings": len(result.warnings), "score": result.score}
                )
            else:
                logger.warning(
                    "❌ design.validation.failed",
                    extra={
                        "design_id": design.id,
                        "errors": len(result.errors),
                        "warnings": len(result.warnings),
                        "score": result.score,
                    }
                )
            return result

    def _validate_component(
        self,
        component: AppComponent,
        known_ids: Set[str],
        issues: List[ValidationIssue],
    ) -> None:
        self._validate_layout(component, issues)
        self._validate_content(component, issues)
        self._validate_parent(component, known_ids, issues)
        self._validate_style(component, issues)

        for child in component.children:
            self._validate_component(child, known_ids, issues)

    def _validate_layout(self, component: AppComponent, issues: List[ValidationIssue]) -> None:
        layout = component.layout
        if layout.width <= 0:
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                component_id=component.id,
                field="width",
                message="Component has invalid width",
                suggestion="Set a positive width",
            ))
        if layout.height <= 0 and component.type != DesignComponentType.SPACER:
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                component_id=component.id,
                field="height",
                message="Component has invalid height",
                suggestion="Set a positive height",
            ))

    def _validate_content(self, component: AppComponent, issues: List[ValidationIssue]) -> None:
        data = component.data
        kind = component.type

        if kind == DesignComponentType.TEXT and not data.text:
            issues.append(ValidationIssue(
                severity=Severity.WARNING,
                component_id=component.id,
                field="text",
                message="Text component is empty",
                suggestion="Add some text content",
            ))
        elif kind == DesignComponentType.BUTTON and not data.text:
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                component_id=component.id,
                field="text",
                message="Button must have text",
                suggestion="Add a short call to action",
            ))
        elif kind == DesignComponentType.IMAGE and not data.image_url:
            issues.append(ValidationIssue(
                severity=Severity.WARNING,
                component_id=component.id,
                field="imageURL",
                message="Image has no URL",
                suggestion="Provide an image URL",
            ))
        elif kind == DesignComponentType.LIST and not data.items:
            issues.append(ValidationIssue(
                severity=Severity.WARNING,
                component_id=component.id,
                field="items",
                message="List has no items",
                suggestion="Add list items",
            ))

    def _validate_parent(
        self,
        component: AppComponent,
        known_ids: Set[str],
        issues: List[ValidationIssue],
    ) -> None:
        if component.parent_id is not None and component.parent_id not in known_ids:
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                component_id=component.id,
                field="parentId",
                message=f"Parent '{component.parent_id}' does not exist",
            ))

    def _validate_unique_ids(self, all_ids: List[str], issues: List[ValidationIssue]) -> None:
        duplicates = sorted(i for i, n in Counter(all_ids).items() if n > 1)
        if duplicates:
            issues.append(ValidationIssue(
                severity=Severity.CRITICAL,
                message=f"Duplicate component ids: {', '.join(duplicates)}",
                suggestion="Give every component a unique id",
            ))

    def _validate_style(self, component: AppComponent, issues: List[ValidationIssue]) -> None:
        style = component.style

        for attr, label in COLOR_FIELDS:
            value = getattr(style, attr)
            if not is_valid_color(value):
                issues.append(ValidationIssue(
                    severity=Severity.ERROR,
                    component_id=component.id,
                    field=attr,
                    message=f"Invalid {label}: {value}",
                    suggestion="Use #RGB, #RRGGBB or #RRGGBBAA",
                ))

        if not 0 <= style.opacity <= 1:
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                component_id=component.id,
                field="opacity",
                message=f"Opacity {style.opacity} is outside [0, 1]",
            ))

        if style.font_size <= 0:
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                component_id=component.id,
                field="font_size",
                message=f"Invalid font size: {style.font_size}",
            ))


class SpecValidator:
    """
    Reference and style checks for MiniApp specs.

    Dangling action ids and navigation targets are reported as warnings
    only; the runtime tolerates both.
    """

    def validate(self, spec: Spec) -> ValidationResult:
        issues: List[ValidationIssue] = []

        if not spec.pages:
            issues.append(ValidationIssue(
                severity=Severity.ERROR,
                message="Spec has no pages",
                suggestion="Add at least one page",
            ))

        page_ids = [p.id for p in spec.pages]
        duplicate_pages = sorted(i for i, n in Counter(page_ids).items() if n > 1)
        if duplicate_pages:
            issues.append(ValidationIssue(
                severity=Severity.CRITICAL,
                message=f"Duplicate page ids: {', '.join(duplicate_pages)}",
            ))

        component_ids = [c.id for c in spec.components()]
        duplicate_components = sorted(i for i, n in Counter(component_ids).items() if n > 1)
        if duplicate_components:
            issues.append(ValidationIssue(
                severity=Severity.CRITICAL,
                message=f"Duplicate component ids: {', '.join(duplicate_components)}",
            ))

        action_ids = {a.id for a in spec.actions}
        known_pages = set(page_ids)

        for component in spec.components():
            for action_id in component.action_ids:
                if action_id not in action_ids:
                    issues.append(ValidationIssue(
                        severity=Severity.WARNING,
                        component_id=component.id,
                        field="actionIds",
                        message=f"Unknown action '{action_id}' will be ignored",
                    ))

            if component.type == ComponentType.BUTTON and not (component.props.label or component.props.text):
                issues.append(ValidationIssue(
                    severity=Severity.WARNING,
                    component_id=component.id,
                    field="label",
                    message="Button has no label",
                    suggestion="Add a label or text",
                ))

            style = component.props.style
            for attr, label in COLOR_FIELDS:
                value = getattr(style, attr)
                if not is_valid_color(value):
                    issues.append(ValidationIssue(
                        severity=Severity.ERROR,
                        component_id=component.id,
                        field=attr,
                        message=f"Invalid {label}: {value}",
                    ))

        for action in spec.actions:
            if action.type != ActionType.NAVIGATE:
                continue
            target = action.param("targetPageId")
            target_id = target.as_string() if target is not None else None
            if target_id is None or target_id not in known_pages:
                issues.append(ValidationIssue(
                    severity=Severity.WARNING,
                    field="targetPageId",
                    message=f"Navigate action '{action.id}' targets unknown page '{target_id}'",
                ))

        result = ValidationResult.from_issues(issues)
        logger.info(
            "spec.validation.completed",
            extra={"spec_id": spec.id, **result.summary()}
        )
        return result


# Global instances
design_validator = DesignValidator()
spec_validator = SpecValidator()
