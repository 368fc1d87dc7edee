"""Generator configuration.

Every knob defaults to the generator's standard behaviour, so
``GeneratorConfig()`` is the configuration a build uses unless it opts in
to something else.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, Mapping, Tuple, Union

from overridegen.errors import ConfigError, ErrorCodes

__all__ = [
    "ForwardingStrategy",
    "GeneratorConfig",
    "load_config",
]

_log = logging.getLogger(__name__)


class ForwardingStrategy(Enum):
    """How generic type parameters are carried from ancestor to override.

    ``PARAMETER_NAME`` rewrites a forwarded argument whose *name* equals an
    ancestor type-parameter name.  ``DECLARED_TYPE`` remaps the parameter
    and return *types* and always forwards arguments by their own names.
    """

    PARAMETER_NAME = "parameter-name"
    DECLARED_TYPE = "declared-type"


@dataclass(frozen=True)
class GeneratorConfig:
    trigger_attribute: str = "GenerateOverrideAttribute"
    caller_attributes: Tuple[str, ...] = (
        "CallerFilePathAttribute",
        "CallerLineNumberAttribute",
    )
    excluded_methods: FrozenSet[str] = frozenset({"BindAuthorizationCriteria"})
    forwarding: ForwardingStrategy = ForwardingStrategy.PARAMETER_NAME
    async_unit_types: Tuple[str, ...] = ("Task", "ValueTask")
    relaxed_constraint_parameters: Tuple[str, ...] = ("TProjectionType",)
    return_unawaited_tasks: bool = False
    skip_existing_overrides: bool = True
    usings: Tuple[str, ...] = (
        "System.Linq.Expressions",
        "System.Runtime.CompilerServices",
    )
    hint_suffix: str = "_Overrides.g.cs"
    max_workers: int = 1

    def __post_init__(self) -> None:
        if not self.trigger_attribute:
            raise ConfigError("trigger_attribute must not be empty")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be >= 1, got {self.max_workers}")
        if not self.hint_suffix.endswith(".cs"):
            raise ConfigError(
                f"hint_suffix must end with '.cs', got {self.hint_suffix!r}"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GeneratorConfig":
        """Build a config from plain data (JSON object, CLI overrides).

        Keys use the field names; list values become tuples/frozensets and
        ``forwarding`` accepts the strategy's string value.
        """
        known = {f.name: f for f in dataclasses.fields(cls)}
        kwargs: dict = {}
        for key, value in data.items():
            if key not in known:
                raise ConfigError(
                    f"unknown configuration option {key!r}",
                    code=ErrorCodes.UNKNOWN_OPTION,
                    hint="valid options: " + ", ".join(sorted(known)),
                )
            kwargs[key] = _coerce(key, value)
        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> "GeneratorConfig":
        """Copy with the given non-``None`` fields replaced."""
        changes = {k: _coerce(k, v) for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)


def _coerce(key: str, value: Any) -> Any:
    if key == "forwarding":
        if isinstance(value, ForwardingStrategy):
            return value
        try:
            return ForwardingStrategy(value)
        except ValueError:
            valid = ", ".join(s.value for s in ForwardingStrategy)
            raise ConfigError(
                f"invalid forwarding strategy {value!r}", hint=f"use one of: {valid}"
            ) from None
    if key == "excluded_methods":
        return frozenset(_string_list(key, value))
    if key in ("caller_attributes", "async_unit_types", "relaxed_constraint_parameters", "usings"):
        return tuple(_string_list(key, value))
    if key in ("return_unawaited_tasks", "skip_existing_overrides"):
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be a boolean, got {value!r}")
        return value
    if key == "max_workers":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"max_workers must be an integer, got {value!r}")
        return value
    if key in ("trigger_attribute", "hint_suffix"):
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string, got {value!r}")
        return value
    return value


def _string_list(key: str, value: Any) -> list:
    if not isinstance(value, (list, tuple, set, frozenset)) or not all(
        isinstance(v, str) for v in value
    ):
        raise ConfigError(f"{key} must be a list of strings, got {value!r}")
    return list(value)


def load_config(path: Union[str, Path]) -> GeneratorConfig:
    """Read a JSON configuration file."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(
            f"cannot read configuration {p}: {exc}",
            code=ErrorCodes.UNREADABLE_CONFIG,
            cause=exc,
        ) from exc
    if not isinstance(data, dict):
        raise ConfigError(f"configuration {p} must contain a JSON object")
    _log.debug("Loaded configuration from %s: %s", p, sorted(data))
    return GeneratorConfig.from_mapping(data)
