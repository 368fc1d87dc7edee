"""overridegen — caller-context override generator.

This package reads the symbol graph a C# compilation exports, finds
classes marked ``[GenerateOverride]`` and synthesizes partial-class
fragments whose override methods forward to the base implementation, so
that ``[CallerFilePath]`` / ``[CallerLineNumber]`` defaults are captured at
the override's own call site instead of the caller's.

Submodules
----------
errors
    Exception hierarchy and ``OVG-NNNN`` error codes.
config
    ``GeneratorConfig`` and JSON configuration loading.
typeref
    Parsimonious grammar for type text, display and substitution helpers.
symbols
    Immutable symbol model (types, methods, parameters, declarations).
loader
    JSON symbol-dump reader producing a ``Compilation``.
scanner
    Candidate discovery (syntactic pre-filter, semantic confirmation).
hierarchy
    Source-type resolution with the same-name tie-break.
selector
    Eligible ancestor-method selection.
generics
    Ancestor → descendant type-parameter mapping and forwarding strategies.
codegen
    ``CodeEmitter`` and the forwarding ``MethodSynthesizer``.
artifacts
    Partial-class artifact assembly and the trigger attribute asset.
generator
    ``OverrideGenerator`` driver.
main
    CLI entry-point (``generate``, ``scan``, ``attribute``).

Usage
-----
Command-line::

    python -m overridegen generate symbols.json -o obj/generated
    python -m overridegen scan symbols.json

Programmatic::

    from overridegen.loader import load_compilation
    from overridegen.generator import OverrideGenerator

    compilation = load_compilation("symbols.json")
    result = OverrideGenerator().run(compilation)
    result.write_to("obj/generated")
"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "errors",
    "config",
    "typeref",
    "symbols",
    "loader",
    "scanner",
    "hierarchy",
    "selector",
    "generics",
    "codegen",
    "artifacts",
    "generator",
    "main",
]
