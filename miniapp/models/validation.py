"""
Validation findings shared by the design and spec validators.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"


SCORE_PENALTIES = {
    Severity.CRITICAL: 0.3,
    Severity.ERROR: 0.1,
    Severity.WARNING: 0.05,
}


class ValidationIssue(BaseModel):
    """One finding, scoped to a component id (or the whole tree)"""
    severity: Severity
    component_id: Optional[str] = None
    message: str
    suggestion: Optional[str] = None
    field: Optional[str] = None

    @property
    def is_blocking(self) -> bool:
        return self.severity in (Severity.CRITICAL, Severity.ERROR)

    def __str__(self) -> str:
        emoji = {"critical": "🛑", "error": "❌", "warning": "⚠️"}
        scope = self.component_id or "tree"
        s = f"{emoji.get(self.severity.value, '•')} [{self.severity.value.upper()}] {scope}: {self.message}"
        if self.suggestion:
            s += f"\n   → {self.suggestion}"
        return s


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    score: float = 1.0

    @classmethod
    def from_issues(cls, issues: List[ValidationIssue]) -> "ValidationResult":
        """
        Split findings and compute the quality score.

        The score starts at 1.0, loses 0.3 per critical, 0.1 per error and
        0.05 per warning, and is clamped to [0, 1].
        """
        errors = [i for i in issues if i.is_blocking]
        warnings = [i for i in issues if not i.is_blocking]
        penalty = sum(SCORE_PENALTIES[i.severity] for i in issues)
        score = round(min(1.0, max(0.0, 1.0 - penalty)), 4)
        return cls(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            score=score,
        )

    def count(self, severity: Severity) -> int:
        return sum(1 for i in self.errors + self.warnings if i.severity == severity)

    def issues_for(self, component_id: str) -> List[ValidationIssue]:
        return [i for i in self.errors + self.warnings if i.component_id == component_id]

    def summary(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "score": self.score,
            "critical": self.count(Severity.CRITICAL),
            "errors": self.count(Severity.ERROR),
            "warnings": self.count(Severity.WARNING),
        }
