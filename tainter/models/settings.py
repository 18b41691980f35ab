"""Settings file models and loading."""

import re
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tainter.exceptions import ConfigurationError
from tainter.logging_config import LOG_LEVELS, get_logger
from tainter.models.matcher import ConditionPattern, Matcher, TaintTemplate, validate_taint_effect

logger = get_logger(__name__)


def _validate_regex(v: str) -> str:
    try:
        re.compile(v)
    except re.error as e:
        raise ValueError(f"regex parse error in '{v}': {e}")
    return v


class ServerSettings(BaseModel):
    """Address the liveness endpoint listens on."""

    host: str
    port: int = Field(..., ge=0, le=65535)


class LogSettings(BaseModel):
    """Logging settings."""

    max_level: str

    @field_validator("max_level")
    @classmethod
    def validate_max_level(cls, v: str) -> str:
        """Validate max_level is a known level name."""
        level = v.strip().lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"max_level must be one of {list(LOG_LEVELS)}, got '{v}'")
        return level


class TaintSettings(BaseModel):
    """Taint a matcher applies."""

    effect: str  # NoSchedule, PreferNoSchedule, NoExecute
    key: str
    value: str

    @field_validator("effect")
    @classmethod
    def validate_effect(cls, v: str) -> str:
        """Validate taint effect is one of the allowed values."""
        return validate_taint_effect(v)

    @field_validator("key", "value")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate key and value are not empty."""
        if not v:
            raise ValueError("must not be empty")
        return v


class ConditionSettings(BaseModel):
    """Regular expressions for a node condition's type and status."""

    model_config = ConfigDict(populate_by_name=True)

    type_: str = Field(..., alias="type")
    status: str

    @field_validator("type_", "status", mode="before")
    @classmethod
    def coerce_scalar(cls, v):
        """Read unquoted YAML scalars such as ``True`` as their text."""
        if isinstance(v, bool):
            return "True" if v else "False"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("type_", "status")
    @classmethod
    def validate_regex(cls, v: str) -> str:
        """Validate the value compiles as a regular expression."""
        return _validate_regex(v)


class MatcherSettings(BaseModel):
    """A taint and the conditions a node must report to receive it."""

    taint: TaintSettings
    conditions: list[ConditionSettings] = Field(default_factory=list)

    def to_matcher(self) -> Matcher:
        """Compile into an immutable runtime matcher."""
        return Matcher(
            taint=TaintTemplate(key=self.taint.key, value=self.taint.value, effect=self.taint.effect),
            conditions=tuple(
                ConditionPattern(type_pattern=c.type_, status_pattern=c.status)
                for c in self.conditions
            ),
        )


class ReconcilerSettings(BaseModel):
    """Reconciler settings."""

    matchers: list[MatcherSettings] = Field(default_factory=list)


class Settings(BaseModel):
    """Complete tainter configuration."""

    server: ServerSettings
    log: LogSettings
    reconciler: ReconcilerSettings

    def build_matchers(self) -> list[Matcher]:
        """Build the matchers used by the reconciler, in configured order."""
        return [m.to_matcher() for m in self.reconciler.matchers]

    @classmethod
    def load(cls, path: str | Path) -> "Settings":
        """Load and validate settings from a YAML or TOML file.

        Files ending in ``.toml`` are parsed as TOML, anything else as YAML.

        Raises:
            ConfigurationError: If the file cannot be read, parsed or validated
        """
        path = Path(path)
        logger.debug(f"Reading settings file: {path}")

        if not path.is_file():
            raise ConfigurationError(
                f"Settings file not found: {path}",
                f"Expected location: {path.absolute()}\n"
                "Create the file or specify a different path with --config-file",
            )

        try:
            if path.suffix == ".toml":
                import tomli

                with open(path, "rb") as f:
                    data = tomli.load(f)
            else:
                with open(path) as f:
                    data = yaml.safe_load(f)
        except Exception as e:
            raise ConfigurationError(f"Failed to parse settings file {path}", str(e))

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file {path} is empty or is not a mapping",
                "The file must define the server, log and reconciler sections.",
            )

        try:
            settings = cls.model_validate(data)
        except ValidationError as e:
            problems = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                problems.append(f"{field}: {error['msg']}")
            raise ConfigurationError(f"Invalid settings in {path}", "\n".join(problems))

        logger.debug(f"Loaded {len(settings.reconciler.matchers)} matchers from {path}")
        return settings
