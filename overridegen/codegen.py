#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
overridegen/codegen.py
======================

Text synthesis for forwarding overrides.

For every selected ancestor method this module writes an override that
reproduces the ancestor's signature (accessibility, ``async``, return
type, method type parameters, parameters with their caller markers and
defaults) and whose body calls ``base`` with every argument passed on, so
the caller-context defaults are evaluated at the override's call site.

Architecture
------------
``CodeEmitter``
    Indentation-aware line buffer with brace-block context managers.
``MethodSynthesizer``
    One instance per candidate (it owns that candidate's ``GenericMap``);
    turns a ``MethodSymbol`` into a ``SynthesizedMethod`` and emits it.

Body shape
----------
- ``void`` or a non-generic async-unit type (``Task``, ``ValueTask``):
  the base call is a statement, awaited iff the ancestor is ``async``.
- anything else: ``return [await ]base.Name(args);``

With ``return_unawaited_tasks`` a non-async method returning an
async-unit type returns the base call instead of discarding it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from io import StringIO
from typing import Any, List, Optional, Tuple

from overridegen.config import GeneratorConfig
from overridegen.generics import GenericMap, forward_argument, remap_type
from overridegen.symbols import MethodSymbol, ParameterSymbol
from overridegen.typeref import display, has_nullable_parameter, requires_unsafe

__all__ = [
    "CodeEmitter",
    "SynthesizedMethod",
    "MethodSynthesizer",
    "render_default",
    "marker_text",
]

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# CODE EMITTER
# ═══════════════════════════════════════════════════════════════════════════

class CodeEmitter:
    """Low-level code emission with indentation management.

    Provides a structured way to emit C# code with:
    - Automatic indentation tracking
    - Brace-block context managers
    - String literal escaping
    """

    def __init__(self, indent_str: str = "    ") -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 0

    def emit(self, code: str) -> None:
        """Emit a line of code at the current indentation."""
        if code.strip():
            self._buffer.write(self._indent_str * self._indent_level)
            self._buffer.write(code)
        self._buffer.write("\n")

    def emit_blank(self, count: int = 1) -> None:
        """Emit blank lines."""
        for _ in range(count):
            self._buffer.write("\n")

    def emit_comment(self, text: str) -> None:
        """Emit a line comment."""
        for line in text.split("\n"):
            self.emit(f"// {line}")

    def indent(self) -> None:
        self._indent_level += 1

    def dedent(self) -> None:
        self._indent_level = max(0, self._indent_level - 1)

    def block(self, header: Optional[str] = None) -> "CodeEmitter._BlockContext":
        """Context manager for a ``{ ... }`` block, optionally after *header*."""
        return self._BlockContext(self, header)

    class _BlockContext:
        """Context manager for brace blocks."""

        def __init__(self, emitter: "CodeEmitter", header: Optional[str]) -> None:
            self._emitter = emitter
            self._header = header

        def __enter__(self) -> "CodeEmitter":
            if self._header:
                self._emitter.emit(self._header)
            self._emitter.emit("{")
            self._emitter.indent()
            return self._emitter

        def __exit__(self, *args: Any) -> None:
            self._emitter.dedent()
            self._emitter.emit("}")

    def get_code(self) -> str:
        """Get the generated code."""
        return self._buffer.getvalue()

    @staticmethod
    def escape_string(s: str) -> str:
        """Escape a string as a regular C# string literal."""
        escaped = (
            s.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
            .replace("\0", "\\0")
        )
        return f'"{escaped}"'

    @staticmethod
    def escape_char(c: str) -> str:
        """Escape a single character as a C# char literal."""
        if c == "'":
            return "'\\''"
        return "'" + CodeEmitter.escape_string(c)[1:-1] + "'"


# ═══════════════════════════════════════════════════════════════════════════
# PARAMETER PIECES
# ═══════════════════════════════════════════════════════════════════════════

def render_default(value: Any, type_text: str = "") -> str:
    """Render an explicit default in lower-cased literal form.

    ``None`` is ``null``; booleans and numbers use their lower-cased text;
    strings (and single characters for ``char`` parameters) become escaped
    literals; ``{"literal": "..."}`` is the host's own textual form and is
    written verbatim.  Anything else cannot be rendered faithfully and
    falls back to ``null``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return repr(value).lower()
    if isinstance(value, str):
        if type_text.rstrip("?") == "char" and len(value) == 1:
            return CodeEmitter.escape_char(value)
        return CodeEmitter.escape_string(value)
    if isinstance(value, dict) and isinstance(value.get("literal"), str):
        return value["literal"]
    _log.warning("Cannot render default value %r; using null", value)
    return "null"


def marker_text(parameter: ParameterSymbol, caller_attributes) -> str:
    """Caller markers re-attached in short form, e.g. ``[CallerFilePath]``."""
    shorts = []
    for name in parameter.markers(caller_attributes):
        if name.endswith("Attribute") and name != "Attribute":
            name = name[: -len("Attribute")]
        shorts.append(f"[{name}]")
    return " ".join(shorts)


# ═══════════════════════════════════════════════════════════════════════════
# METHOD SYNTHESIS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SynthesizedMethod:
    """One forwarding override, split into its textual pieces."""

    method: MethodSymbol
    signature: str
    constraints: Tuple[str, ...]
    body: str
    parameters: Tuple[str, ...]
    arguments: Tuple[str, ...]

    @property
    def name(self) -> str:
        return self.method.name


class MethodSynthesizer:
    """Synthesizes forwarding overrides for one candidate class."""

    def __init__(self, generic_map: GenericMap, config: Optional[GeneratorConfig] = None) -> None:
        self.generic_map = generic_map
        self.config = config or GeneratorConfig()

    def _type_text(self, type_ref) -> str:
        return display(remap_type(type_ref, self.generic_map, self.config.forwarding))

    def render_parameter(self, parameter: ParameterSymbol) -> str:
        type_text = self._type_text(parameter.type)
        text = marker_text(parameter, self.config.caller_attributes)
        if parameter.modifier:
            text += f"{parameter.modifier} "
        text += f"{type_text} {parameter.name}"
        if parameter.has_explicit_default:
            text += f" = {render_default(parameter.default.value, type_text)}"
        return text

    def render_arguments(self, method: MethodSymbol) -> List[str]:
        return [
            forward_argument(p, self.generic_map, self.config.forwarding)
            for p in method.parameters
        ]

    def return_type(self, method: MethodSymbol) -> str:
        return self._type_text(method.return_type)

    def signature(self, method: MethodSymbol, parameters: List[str]) -> str:
        parts = [method.accessibility.keyword, "override"]
        signature_types = [method.return_type] + [p.type for p in method.parameters]
        if any(requires_unsafe(t) for t in signature_types):
            parts.append("unsafe")
        if method.is_async:
            parts.append("async")
        parts.append(self.return_type(method))
        generics = ""
        if method.type_parameters:
            generics = "<" + ", ".join(method.type_parameters) + ">"
        parts.append(f"{method.name}{generics}({', '.join(parameters)})")
        return " ".join(parts)

    def constraints(self, method: MethodSymbol) -> List[str]:
        """``where T : default`` for relaxed type parameters used as ``T?``."""
        returned = remap_type(method.return_type, self.generic_map, self.config.forwarding)
        return [
            f"where {name} : default"
            for name in self.config.relaxed_constraint_parameters
            if name in method.type_parameters and has_nullable_parameter(returned, name)
        ]

    def discards_result(self, method: MethodSymbol) -> bool:
        return_type = self.return_type(method)
        if return_type == "void":
            return True
        if return_type in self.config.async_unit_types:
            return method.is_async or not self.config.return_unawaited_tasks
        return False

    def body(self, method: MethodSymbol, arguments: List[str]) -> str:
        awaited = "await " if method.is_async else ""
        call = f"{awaited}base.{method.name}({', '.join(arguments)})"
        if self.discards_result(method):
            return f"{call};"
        return f"return {call};"

    def synthesize(self, method: MethodSymbol) -> SynthesizedMethod:
        parameters = [self.render_parameter(p) for p in method.parameters]
        arguments = self.render_arguments(method)
        return SynthesizedMethod(
            method=method,
            signature=self.signature(method, parameters),
            constraints=tuple(self.constraints(method)),
            body=self.body(method, arguments),
            parameters=tuple(parameters),
            arguments=tuple(arguments),
        )

    def emit(self, emitter: CodeEmitter, synthesized: SynthesizedMethod) -> None:
        emitter.emit(synthesized.signature)
        if synthesized.constraints:
            emitter.indent()
            for constraint in synthesized.constraints:
                emitter.emit(constraint)
            emitter.dedent()
        with emitter.block():
            emitter.emit(synthesized.body)
