"""Artifact assembly.

Wraps the synthesized methods of one candidate in a ``partial class``
declaration (inside a ``namespace`` block when the candidate has one) and
keys the result by ``{ClassName}_Overrides.g.cs``.  A candidate with no
synthesized method gets no artifact at all.

Also holds the trigger attribute's declaration, a fixed source file the
generator contributes once per run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from overridegen.codegen import CodeEmitter, MethodSynthesizer
from overridegen.config import GeneratorConfig
from overridegen.generics import GenericMap
from overridegen.hierarchy import Resolution, SkipReason
from overridegen.symbols import MethodSymbol, attribute_simple_name

__all__ = [
    "GeneratedArtifact",
    "Generated",
    "Skipped",
    "ClassOutcome",
    "ArtifactEmitter",
    "attribute_hint_name",
    "attribute_source",
]


def attribute_hint_name(config: Optional[GeneratorConfig] = None) -> str:
    config = config or GeneratorConfig()
    return f"{attribute_simple_name(config.trigger_attribute)}.g.cs"


def attribute_source(config: Optional[GeneratorConfig] = None) -> str:
    """Declaration of the trigger attribute (class-only, not inherited)."""
    config = config or GeneratorConfig()
    name = attribute_simple_name(config.trigger_attribute)
    return (
        "// <auto-generated/>\n"
        "using System;\n"
        "[AttributeUsage(AttributeTargets.Class, Inherited = false, AllowMultiple = false)]\n"
        f"public sealed class {name} : Attribute\n"
        "{\n"
        "}\n"
    )


@dataclass(frozen=True)
class GeneratedArtifact:
    class_name: str
    hint_name: str
    text: str
    source_type: str = ""
    methods: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Generated:
    artifact: GeneratedArtifact

    @property
    def class_name(self) -> str:
        return self.artifact.class_name


@dataclass(frozen=True)
class Skipped:
    class_name: str
    reason: SkipReason


ClassOutcome = Union[Generated, Skipped]


class ArtifactEmitter:
    """Builds the partial-class fragment for one resolved candidate."""

    def __init__(self, config: Optional[GeneratorConfig] = None) -> None:
        self.config = config or GeneratorConfig()

    def hint_name(self, class_name: str) -> str:
        return f"{class_name}{self.config.hint_suffix}"

    def emit(
        self,
        resolution: Resolution,
        methods: Sequence[MethodSymbol],
        generic_map: GenericMap,
    ) -> Optional[GeneratedArtifact]:
        """The artifact text, or ``None`` when there is nothing to forward."""
        if not methods:
            return None

        candidate = resolution.candidate
        synthesizer = MethodSynthesizer(generic_map, self.config)
        synthesized = [synthesizer.synthesize(m) for m in methods]

        emitter = CodeEmitter()
        emitter.emit("// <auto-generated/>")
        emitter.emit_comment(f"Base type: {resolution.source.name}")
        emitter.emit("#nullable enable")
        for using in self.config.usings:
            emitter.emit(f"using {using};")
        emitter.emit_blank()

        def emit_class() -> None:
            with emitter.block(f"partial class {candidate.display_name}"):
                for index, method in enumerate(synthesized):
                    if index:
                        emitter.emit_blank()
                    synthesizer.emit(emitter, method)

        if candidate.namespace:
            with emitter.block(f"namespace {candidate.namespace}"):
                emit_class()
        else:
            emit_class()

        return GeneratedArtifact(
            class_name=candidate.name,
            hint_name=self.hint_name(candidate.name),
            text=emitter.get_code(),
            source_type=resolution.source.full_name,
            methods=tuple(s.name for s in synthesized),
        )
