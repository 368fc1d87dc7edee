"""
loader.py — read the host's symbol dump
=======================================

The host compilation exports its symbol graph as JSON; this module turns
that document into an immutable ``Compilation``.  Layout::

    {
      "assembly": "SourceGenBugTest",
      "types": [
        {
          "name": "BaseClass",
          "namespace": "BaseLibrary",
          "kind": "class",
          "type_parameters": [],
          "base": "System.Object",
          "attribute_lists": [],
          "methods": [
            {
              "name": "DoSomethingAsync",
              "accessibility": "protected",
              "modifiers": ["virtual", "async"],
              "kind": "ordinary",
              "return_type": "System.Threading.Tasks.Task",
              "type_parameters": [],
              "parameters": [
                {"name": "id", "type": "long"},
                {"name": "filePath", "type": "string?",
                 "attributes": ["CallerFilePathAttribute"],
                 "default": null}
              ]
            }
          ]
        }
      ],
      "declarations": [
        {"type": "SourceGenBugTest.BrokenClass",
         "attribute_lists": [["GenerateOverride"]]}
      ]
    }

A type entry carrying ``attribute_lists`` contributes one declaration; the
top-level ``declarations`` array adds more (one per partial part).  A base
that names a type missing from ``types`` becomes an opaque external type
with no members and no base of its own.  A parameter has an explicit
default exactly when its ``default`` key is present.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from overridegen.errors import ErrorCodes, SymbolLoadError, TypeSyntaxError
from overridegen.symbols import (
    PARAMETER_MODIFIERS,
    Accessibility,
    ClassDeclaration,
    Compilation,
    DefaultValue,
    MethodKind,
    MethodSymbol,
    ParameterSymbol,
    TypeKind,
    TypeSymbol,
    Virtuality,
)
from overridegen.typeref import SPECIAL_TYPES, NamedType, OpaqueType, TypeRef, parse_type

__all__ = [
    "load_compilation",
    "load_compilation_from_mapping",
]

_log = logging.getLogger(__name__)

_KEYWORD_TYPES = {keyword: qualified for qualified, keyword in SPECIAL_TYPES.items()}

_ACCESSIBILITY_ALIASES = {
    "public": Accessibility.PUBLIC,
    "protected": Accessibility.PROTECTED,
    "internal": Accessibility.INTERNAL,
    "friend": Accessibility.INTERNAL,
    "private": Accessibility.PRIVATE,
    "protected internal": Accessibility.PROTECTED_INTERNAL,
    "protectedorinternal": Accessibility.PROTECTED_INTERNAL,
    "private protected": Accessibility.PRIVATE_PROTECTED,
    "protectedandinternal": Accessibility.PRIVATE_PROTECTED,
}

_METHOD_MODIFIERS = frozenset(
    {"virtual", "abstract", "override", "sealed", "static", "async", "new", "extern", "unsafe"}
)


def load_compilation(path: Union[str, Path]) -> Compilation:
    """Read a symbol dump file."""
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SymbolLoadError(
            f"cannot read symbol dump {p}: {exc}",
            code=ErrorCodes.UNREADABLE_DUMP,
            cause=exc,
        ) from exc
    except ValueError as exc:
        raise SymbolLoadError(
            f"symbol dump {p} is not valid JSON: {exc}",
            code=ErrorCodes.INVALID_DUMP,
            cause=exc,
        ) from exc
    _log.info("Loaded symbol dump %s", p)
    return load_compilation_from_mapping(data)


def load_compilation_from_mapping(data: Any) -> Compilation:
    """Build a ``Compilation`` from an already decoded dump."""
    if not isinstance(data, Mapping):
        raise SymbolLoadError(
            "symbol dump must be a JSON object", code=ErrorCodes.INVALID_DUMP
        )
    return _Linker(data).link()


# ═══════════════════════════════════════════════════════════════════
#  Field helpers
# ═══════════════════════════════════════════════════════════════════

def _require(entry: Mapping[str, Any], key: str, path: str) -> Any:
    if key not in entry:
        raise SymbolLoadError(
            f"missing required field {key!r}", code=ErrorCodes.MISSING_FIELD, path=path
        )
    return entry[key]


def _string(entry: Mapping[str, Any], key: str, path: str, default: Optional[str] = None) -> str:
    value = entry.get(key, default) if default is not None else _require(entry, key, path)
    if not isinstance(value, str):
        raise SymbolLoadError(
            f"field {key!r} must be a string, got {value!r}",
            code=ErrorCodes.INVALID_FIELD,
            path=path,
        )
    return value


def _list(entry: Mapping[str, Any], key: str, path: str) -> list:
    value = entry.get(key) or []
    if not isinstance(value, list):
        raise SymbolLoadError(
            f"field {key!r} must be a list, got {type(value).__name__}",
            code=ErrorCodes.INVALID_FIELD,
            path=path,
        )
    return value


def _strings(entry: Mapping[str, Any], key: str, path: str) -> Tuple[str, ...]:
    values = _list(entry, key, path)
    for value in values:
        if not isinstance(value, str):
            raise SymbolLoadError(
                f"field {key!r} must contain only strings, got {value!r}",
                code=ErrorCodes.INVALID_FIELD,
                path=path,
            )
    return tuple(values)


def _type(text: Any, path: str, lenient: bool = False) -> TypeRef:
    """Parse a type field.

    Member types are *lenient*: text the grammar does not cover is kept
    verbatim as an ``OpaqueType`` so one exotic signature cannot reject the
    whole dump.  Base and declaration types must parse.
    """
    if not isinstance(text, str):
        raise SymbolLoadError(
            f"type must be a string, got {text!r}", code=ErrorCodes.INVALID_FIELD, path=path
        )
    try:
        return parse_type(text)
    except TypeSyntaxError as exc:
        if lenient:
            _log.warning("%s: keeping unparsed type text %r", path, text)
            return OpaqueType(text)
        raise SymbolLoadError(
            exc.message, code=ErrorCodes.TYPE_SYNTAX, path=path, cause=exc
        ) from exc


def _attribute_lists(entry: Mapping[str, Any], path: str) -> Tuple[Tuple[str, ...], ...]:
    lists = []
    for index, attribute_list in enumerate(_list(entry, "attribute_lists", path)):
        if isinstance(attribute_list, str):
            attribute_list = [attribute_list]
        lists.append(_strings({"names": attribute_list}, "names", f"{path}.attribute_lists[{index}]"))
    return tuple(lists)


def _enum(enum_cls, value: Any, path: str, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise SymbolLoadError(
            f"invalid {field_name} {value!r}",
            code=ErrorCodes.INVALID_FIELD,
            path=path,
            hint=f"expected one of: {valid}",
        ) from None


# ═══════════════════════════════════════════════════════════════════
#  Members
# ═══════════════════════════════════════════════════════════════════

def _load_parameter(entry: Any, path: str) -> ParameterSymbol:
    if not isinstance(entry, Mapping):
        raise SymbolLoadError("parameter must be an object", code=ErrorCodes.INVALID_FIELD, path=path)
    modifier = _string(entry, "modifier", path, default="")
    if modifier and modifier not in PARAMETER_MODIFIERS:
        raise SymbolLoadError(
            f"invalid parameter modifier {modifier!r}",
            code=ErrorCodes.INVALID_FIELD,
            path=path,
            hint="expected one of: " + ", ".join(sorted(PARAMETER_MODIFIERS)),
        )
    return ParameterSymbol(
        name=_string(entry, "name", path),
        type=_type(_require(entry, "type", path), f"{path}.type", lenient=True),
        default=DefaultValue(entry["default"]) if "default" in entry else None,
        attributes=_strings(entry, "attributes", path),
        modifier=modifier,
    )


def _accessibility(value: Any, path: str) -> Accessibility:
    key = str(value).strip().lower().replace("_", " ").replace("-", " ")
    if key in _ACCESSIBILITY_ALIASES:
        return _ACCESSIBILITY_ALIASES[key]
    if key.replace(" ", "") in _ACCESSIBILITY_ALIASES:
        return _ACCESSIBILITY_ALIASES[key.replace(" ", "")]
    raise SymbolLoadError(
        f"invalid accessibility {value!r}", code=ErrorCodes.INVALID_FIELD, path=path
    )


def _load_method(entry: Any, path: str) -> MethodSymbol:
    if not isinstance(entry, Mapping):
        raise SymbolLoadError("method must be an object", code=ErrorCodes.INVALID_FIELD, path=path)
    modifiers = set(_strings(entry, "modifiers", path))
    unknown = modifiers - _METHOD_MODIFIERS
    if unknown:
        raise SymbolLoadError(
            f"unknown method modifier(s) {sorted(unknown)}",
            code=ErrorCodes.INVALID_FIELD,
            path=path,
        )

    if "override" in modifiers:
        virtuality = Virtuality.OVERRIDE
    elif "abstract" in modifiers:
        virtuality = Virtuality.ABSTRACT
    elif "virtual" in modifiers:
        virtuality = Virtuality.VIRTUAL
    else:
        virtuality = Virtuality.NON_VIRTUAL

    parameters = tuple(
        _load_parameter(p, f"{path}.parameters[{i}]")
        for i, p in enumerate(_list(entry, "parameters", path))
    )
    return MethodSymbol(
        name=_string(entry, "name", path),
        return_type=_type(
            entry.get("return_type", "void"), f"{path}.return_type", lenient=True
        ),
        accessibility=_accessibility(entry.get("accessibility", "private"), path),
        virtuality=virtuality,
        is_sealed="sealed" in modifiers,
        is_static="static" in modifiers,
        is_async="async" in modifiers,
        method_kind=_enum(MethodKind, entry.get("kind", "ordinary"), path, "method kind"),
        type_parameters=_strings(entry, "type_parameters", path),
        parameters=parameters,
    )


# ═══════════════════════════════════════════════════════════════════
#  Linking
# ═══════════════════════════════════════════════════════════════════

def _metadata_key(namespace: str, name: str, arity: int) -> str:
    simple = f"{name}`{arity}" if arity else name
    return f"{namespace}.{simple}" if namespace else simple


class _Linker:
    """Two passes: index raw type entries, then build symbols base-first."""

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = data
        self._raw: Dict[str, Tuple[Mapping[str, Any], str]] = {}
        self._by_simple: Dict[Tuple[str, int], List[str]] = {}
        self._built: Dict[str, TypeSymbol] = {}
        self._external: Dict[str, TypeSymbol] = {}
        self._visiting: Set[str] = set()

    def link(self) -> Compilation:
        assembly = self._data.get("assembly", "")
        if not isinstance(assembly, str):
            raise SymbolLoadError(
                "field 'assembly' must be a string", code=ErrorCodes.INVALID_FIELD
            )

        for index, entry in enumerate(_list(self._data, "types", "$")):
            self._index(entry, f"types[{index}]")
        for key in self._raw:
            self._build(key)

        declarations: List[ClassDeclaration] = []
        for key, (entry, path) in self._raw.items():
            if "attribute_lists" in entry:
                symbol = self._built[key]
                declarations.append(ClassDeclaration(
                    symbol=symbol,
                    kind=symbol.kind,
                    attribute_lists=_attribute_lists(entry, path),
                ))
        for index, entry in enumerate(_list(self._data, "declarations", "$")):
            declarations.append(self._declaration(entry, f"declarations[{index}]"))

        types = dict(self._built)
        types.update(self._external)
        _log.debug(
            "Linked %d type(s), %d external, %d declaration(s)",
            len(self._built), len(self._external), len(declarations),
        )
        return Compilation(types=types, declarations=tuple(declarations), assembly_name=assembly)

    # -- pass 1 --------------------------------------------------------

    def _index(self, entry: Any, path: str) -> None:
        if not isinstance(entry, Mapping):
            raise SymbolLoadError("type must be an object", code=ErrorCodes.INVALID_FIELD, path=path)
        name = _string(entry, "name", path)
        namespace = _string(entry, "namespace", path, default="")
        arity = len(_strings(entry, "type_parameters", path))
        key = _metadata_key(namespace, name, arity)
        if key in self._raw:
            raise SymbolLoadError(
                f"type {key!r} declared twice", code=ErrorCodes.DUPLICATE_TYPE, path=path
            )
        self._raw[key] = (entry, path)
        self._by_simple.setdefault((name, arity), []).append(key)

    # -- pass 2 --------------------------------------------------------

    def _build(self, key: str) -> TypeSymbol:
        if key in self._built:
            return self._built[key]
        entry, path = self._raw[key]
        if key in self._visiting:
            raise SymbolLoadError(
                f"circular base type chain through {key!r}",
                code=ErrorCodes.CIRCULAR_BASE,
                path=path,
            )
        self._visiting.add(key)

        namespace = _string(entry, "namespace", path, default="")
        base_type: Optional[TypeSymbol] = None
        base_arguments: Tuple[TypeRef, ...] = ()
        base_text = entry.get("base")
        if base_text is not None:
            ref = _type(base_text, f"{path}.base")
            if not isinstance(ref, NamedType):
                raise SymbolLoadError(
                    f"base type must be a named type, got {base_text!r}",
                    code=ErrorCodes.INVALID_FIELD,
                    path=f"{path}.base",
                )
            base_type = self._resolve(ref, namespace, f"{path}.base")
            base_arguments = ref.type_arguments

        methods = tuple(
            _load_method(m, f"{path}.methods[{i}]")
            for i, m in enumerate(_list(entry, "methods", path))
        )
        symbol = TypeSymbol(
            name=_string(entry, "name", path),
            namespace=namespace,
            kind=_enum(TypeKind, entry.get("kind", "class"), path, "type kind"),
            type_parameters=_strings(entry, "type_parameters", path),
            base_type=base_type,
            base_type_arguments=base_arguments,
            methods=methods,
        )
        self._visiting.discard(key)
        self._built[key] = symbol
        return symbol

    def _lookup(self, ref: NamedType, context_namespace: str) -> Optional[str]:
        qualified = _KEYWORD_TYPES.get(ref.qualified_name, ref.qualified_name)
        arity = len(ref.type_arguments)
        namespace, _, name = qualified.rpartition(".")
        if namespace:
            key = _metadata_key(namespace, name, arity)
            return key if key in self._raw else None

        keys = self._by_simple.get((name, arity), [])
        for preferred in (context_namespace, ""):
            key = _metadata_key(preferred, name, arity)
            if key in keys:
                return key
        if len(keys) == 1:
            return keys[0]
        if len(keys) > 1:
            raise SymbolLoadError(
                f"type name {name!r} is ambiguous between {sorted(keys)}",
                code=ErrorCodes.INVALID_FIELD,
                hint="qualify the name with its namespace",
            )
        return None

    def _resolve(self, ref: NamedType, context_namespace: str, path: str) -> TypeSymbol:
        try:
            key = self._lookup(ref, context_namespace)
        except SymbolLoadError as exc:
            raise SymbolLoadError(exc.message, code=exc.code, hint=exc.hint, path=path) from exc
        if key is not None:
            return self._build(key)
        return self._external_type(ref)

    def _external_type(self, ref: NamedType) -> TypeSymbol:
        qualified = _KEYWORD_TYPES.get(ref.qualified_name, ref.qualified_name)
        namespace, _, name = qualified.rpartition(".")
        arity = len(ref.type_arguments)
        key = _metadata_key(namespace, name, arity)
        if key not in self._external:
            if arity == 1:
                parameters: Tuple[str, ...] = ("T",)
            else:
                parameters = tuple(f"T{i}" for i in range(1, arity + 1))
            _log.debug("Base type %s is external to the dump", key)
            self._external[key] = TypeSymbol(
                name=name,
                namespace=namespace,
                type_parameters=parameters,
                is_external=True,
            )
        return self._external[key]

    def _declaration(self, entry: Any, path: str) -> ClassDeclaration:
        if not isinstance(entry, Mapping):
            raise SymbolLoadError("declaration must be an object", code=ErrorCodes.INVALID_FIELD, path=path)
        type_name = _string(entry, "type", path)
        key = type_name if type_name in self._raw else None
        if key is None:
            ref = _type(type_name, f"{path}.type")
            if isinstance(ref, NamedType):
                key = self._lookup(ref, "")
        if key is None:
            raise SymbolLoadError(
                f"declaration names unknown type {type_name!r}",
                code=ErrorCodes.UNKNOWN_TYPE,
                path=path,
            )
        symbol = self._built[key]
        kind = _enum(TypeKind, entry["kind"], path, "type kind") if "kind" in entry else symbol.kind
        return ClassDeclaration(
            symbol=symbol,
            kind=kind,
            attribute_lists=_attribute_lists(entry, path),
        )
