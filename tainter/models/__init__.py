"""Data models for matchers and settings."""

from tainter.models.matcher import (
    NO_EXECUTE,
    NO_SCHEDULE,
    PREFER_NO_SCHEDULE,
    TAINT_EFFECTS,
    ConditionPattern,
    Matcher,
    TaintTemplate,
)
from tainter.models.settings import (
    ConditionSettings,
    LogSettings,
    MatcherSettings,
    ReconcilerSettings,
    ServerSettings,
    Settings,
    TaintSettings,
)

__all__ = [
    "NO_EXECUTE",
    "NO_SCHEDULE",
    "PREFER_NO_SCHEDULE",
    "TAINT_EFFECTS",
    "ConditionPattern",
    "Matcher",
    "TaintTemplate",
    "ConditionSettings",
    "LogSettings",
    "MatcherSettings",
    "ReconcilerSettings",
    "ServerSettings",
    "Settings",
    "TaintSettings",
]
