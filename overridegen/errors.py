# overridegen/errors.py
"""
Error types for the override generator.

Generation itself never raises for an ineligible class: a candidate that
cannot be resolved, or whose ancestor has nothing to forward, is reported
as a ``Skipped`` outcome.  The exceptions below cover everything around
that core: reading the symbol dump, parsing type text, validating the
configuration, and honouring a host abort signal.

Error Hierarchy:
────────────────
    OverrideGenError (base)
    ├── SymbolLoadError      - malformed symbol dump
    │   └── TypeSyntaxError  - unparsable type text
    ├── ConfigError          - invalid generator configuration
    └── GenerationCancelled  - host cancellation observed

Error Codes:
────────────
Each error carries a code of the form OVG-NNNN:
  - 1000-1099: Symbol dump structure
  - 1100-1199: Type syntax
  - 2000-2999: Configuration
  - 9000-9999: Run control
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional


@unique
class ErrorPhase(Enum):
    """Stage of the pipeline where an error was raised."""

    LOAD = "load"
    TYPE_SYNTAX = "type-syntax"
    CONFIG = "config"
    RUN = "run"


class ErrorCode:
    """
    Structured error code, ``PREFIX-NNNN``.

    Codes compare equal to their string form so callers can match on
    ``err.code == "OVG-1002"``.
    """

    __slots__ = ("prefix", "number", "phase", "summary")

    def __init__(self, prefix: str, number: int, phase: ErrorPhase, summary: str) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase
        self.summary = summary

    @property
    def code(self) -> str:
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class ErrorCodes:
    """Predefined error codes."""

    # Symbol dump structure (1000-1099)
    UNREADABLE_DUMP = ErrorCode("OVG", 1000, ErrorPhase.LOAD, "symbol dump cannot be read")
    INVALID_DUMP = ErrorCode("OVG", 1001, ErrorPhase.LOAD, "symbol dump is not a JSON object")
    MISSING_FIELD = ErrorCode("OVG", 1002, ErrorPhase.LOAD, "required field missing")
    INVALID_FIELD = ErrorCode("OVG", 1003, ErrorPhase.LOAD, "field has an invalid value")
    DUPLICATE_TYPE = ErrorCode("OVG", 1004, ErrorPhase.LOAD, "type declared twice")
    UNKNOWN_TYPE = ErrorCode("OVG", 1005, ErrorPhase.LOAD, "declaration names an unknown type")
    CIRCULAR_BASE = ErrorCode("OVG", 1006, ErrorPhase.LOAD, "circular base type chain")

    # Type syntax (1100-1199)
    TYPE_SYNTAX = ErrorCode("OVG", 1100, ErrorPhase.TYPE_SYNTAX, "type text does not parse")

    # Configuration (2000-2999)
    UNKNOWN_OPTION = ErrorCode("OVG", 2000, ErrorPhase.CONFIG, "unknown configuration option")
    INVALID_OPTION = ErrorCode("OVG", 2001, ErrorPhase.CONFIG, "configuration option has an invalid value")
    UNREADABLE_CONFIG = ErrorCode("OVG", 2002, ErrorPhase.CONFIG, "configuration file cannot be read")

    # Run control (9000-9999)
    CANCELLED = ErrorCode("OVG", 9001, ErrorPhase.RUN, "generation cancelled by host")


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class OverrideGenError(Exception):
    """
    Base exception for all overridegen errors.

    Carries an ``ErrorCode`` and an optional hint shown after the message.
    """

    default_code: ErrorCode = ErrorCodes.INVALID_DUMP

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        hint: str = "",
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint
        self.cause = cause

    @property
    def phase(self) -> ErrorPhase:
        return self.code.phase

    def __str__(self) -> str:
        text = f"{self.code}: {self.message}"
        if self.hint:
            text += f" (hint: {self.hint})"
        return text


class SymbolLoadError(OverrideGenError):
    """The symbol dump is malformed or inconsistent."""

    default_code = ErrorCodes.INVALID_DUMP

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        hint: str = "",
        cause: Optional[Exception] = None,
        path: str = "",
    ) -> None:
        if path:
            message = f"{path}: {message}"
        super().__init__(message, code=code, hint=hint, cause=cause)
        self.path = path


class TypeSyntaxError(SymbolLoadError):
    """Type text could not be parsed."""

    default_code = ErrorCodes.TYPE_SYNTAX

    def __init__(self, text: str, column: int = 0, cause: Optional[Exception] = None) -> None:
        super().__init__(
            f"cannot parse type {text!r} at column {column}",
            code=ErrorCodes.TYPE_SYNTAX,
            cause=cause,
        )
        self.text = text
        self.column = column


class ConfigError(OverrideGenError):
    """The generator configuration is invalid."""

    default_code = ErrorCodes.INVALID_OPTION


class GenerationCancelled(OverrideGenError):
    """The host signalled cancellation while a run was in progress."""

    default_code = ErrorCodes.CANCELLED

    def __init__(self, completed: int = 0, total: int = 0) -> None:
        super().__init__(
            f"generation cancelled after {completed} of {total} candidate(s)",
            code=ErrorCodes.CANCELLED,
        )
        self.completed = completed
        self.total = total
