"""Runtime matcher models built from the reconciler settings."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

NO_SCHEDULE = "NoSchedule"
PREFER_NO_SCHEDULE = "PreferNoSchedule"
NO_EXECUTE = "NoExecute"

TAINT_EFFECTS = [NO_SCHEDULE, PREFER_NO_SCHEDULE, NO_EXECUTE]


def validate_taint_effect(v: str) -> str:
    """Validate taint effect is one of the allowed values."""
    if v not in TAINT_EFFECTS:
        raise ValueError(f"effect must be one of {TAINT_EFFECTS}, got {v}")
    return v


class TaintTemplate(BaseModel):
    """Taint to apply to an eligible node, without a timestamp."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str | None = None
    effect: str  # NoSchedule, PreferNoSchedule, NoExecute

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Validate key is not empty."""
        if not v:
            raise ValueError("key cannot be empty")
        return v

    @field_validator("effect")
    @classmethod
    def validate_effect(cls, v: str) -> str:
        return validate_taint_effect(v)

    def __str__(self) -> str:
        value = f"={self.value}" if self.value is not None else ""
        return f"{self.key}{value}:{self.effect}"


class ConditionPattern(BaseModel):
    """A pair of regular expressions matched against a node condition.

    Both expressions are searched for anywhere in the candidate string, so
    ``True`` matches ``True`` as well as ``NotTrue``. Anchor the expression
    (``^True$``) to require a full match.
    """

    model_config = ConfigDict(frozen=True)

    type_pattern: re.Pattern
    status_pattern: re.Pattern

    def matches(self, condition: Any) -> bool:
        """Whether a node condition satisfies both expressions.

        Args:
            condition: Anything with ``type`` and ``status`` attributes,
                typically a ``V1NodeCondition``

        Returns:
            True if the type and the status both match
        """
        condition_type = getattr(condition, "type", None) or ""
        condition_status = getattr(condition, "status", None) or ""
        return bool(
            self.type_pattern.search(condition_type)
            and self.status_pattern.search(condition_status)
        )

    def __str__(self) -> str:
        return f"type=~/{self.type_pattern.pattern}/ status=~/{self.status_pattern.pattern}/"


class Matcher(BaseModel):
    """A rule tying a set of condition patterns to the taint it applies."""

    model_config = ConfigDict(frozen=True)

    taint: TaintTemplate
    conditions: tuple[ConditionPattern, ...] = ()
