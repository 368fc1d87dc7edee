"""Generation driver.

``process_class`` is the whole per-candidate transform; it is total and
returns ``Generated`` or ``Skipped``, never raising for a class that
cannot be augmented.  ``OverrideGenerator.run`` scans a compilation, fans
the candidates out (one thread per worker when ``max_workers > 1``), and
collects the artifacts back in candidate order so the result does not
depend on scheduling.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from overridegen.artifacts import (
    ArtifactEmitter,
    ClassOutcome,
    Generated,
    GeneratedArtifact,
    Skipped,
    attribute_hint_name,
    attribute_source,
)
from overridegen.config import GeneratorConfig
from overridegen.errors import GenerationCancelled
from overridegen.generics import build_generic_map
from overridegen.hierarchy import SkipReason, resolve_source
from overridegen.scanner import find_candidates
from overridegen.selector import select_methods
from overridegen.symbols import Compilation, TypeSymbol

__all__ = [
    "GenerationResult",
    "OverrideGenerator",
    "process_class",
]

_log = logging.getLogger(__name__)


def process_class(candidate: TypeSymbol, config: Optional[GeneratorConfig] = None) -> ClassOutcome:
    """Resolve, select, remap and synthesize for a single candidate."""
    config = config or GeneratorConfig()

    resolution = resolve_source(candidate)
    if isinstance(resolution, SkipReason):
        return Skipped(candidate.name, resolution)

    generic_map = build_generic_map(
        resolution.source.type_parameters, candidate.type_parameters
    )
    methods = select_methods(
        resolution.source, config, candidate=candidate, generic_map=generic_map
    )
    artifact = ArtifactEmitter(config).emit(resolution, methods, generic_map)
    if artifact is None:
        _log.debug(
            "%s: nothing to forward from %s",
            candidate.full_name, resolution.source.full_name,
        )
        return Skipped(candidate.name, SkipReason.NO_ELIGIBLE_METHODS)

    _log.debug(
        "%s: forwarding %d method(s) from %s",
        candidate.full_name, len(artifact.methods), resolution.source.full_name,
    )
    return Generated(artifact)


@dataclass
class GenerationResult:
    """Everything one run produced."""

    post_init_sources: Dict[str, str] = field(default_factory=dict)
    artifacts: Dict[str, GeneratedArtifact] = field(default_factory=dict)
    outcomes: List[ClassOutcome] = field(default_factory=list)

    @property
    def sources(self) -> Dict[str, str]:
        """Every source file by hint name, attribute declaration first."""
        result = dict(self.post_init_sources)
        result.update((hint, a.text) for hint, a in self.artifacts.items())
        return result

    @property
    def skipped(self) -> List[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    def artifact_for(self, class_name: str) -> Optional[GeneratedArtifact]:
        for artifact in self.artifacts.values():
            if artifact.class_name == class_name:
                return artifact
        return None

    def write_to(self, directory: Union[str, Path]) -> List[Path]:
        """Write every source file into *directory*, creating it if needed."""
        out = Path(directory)
        out.mkdir(parents=True, exist_ok=True)
        written = []
        for hint, text in self.sources.items():
            path = out / hint
            with open(path, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            written.append(path)
        _log.info("Wrote %d file(s) to %s", len(written), out)
        return written


class OverrideGenerator:
    """Runs the full transform over a compilation."""

    def __init__(self, config: Optional[GeneratorConfig] = None) -> None:
        self.config = config or GeneratorConfig()

    def post_initialization_sources(self) -> Dict[str, str]:
        return {attribute_hint_name(self.config): attribute_source(self.config)}

    def run(
        self,
        compilation: Compilation,
        cancel: Optional[threading.Event] = None,
    ) -> GenerationResult:
        result = GenerationResult(post_init_sources=self.post_initialization_sources())
        candidates = find_candidates(compilation, self.config)

        if self.config.max_workers > 1 and len(candidates) > 1:
            outcomes = self._run_parallel(candidates, cancel)
        else:
            outcomes = []
            for candidate in candidates:
                self._check_cancel(cancel, len(outcomes), len(candidates))
                outcomes.append(process_class(candidate, self.config))

        for outcome in outcomes:
            result.outcomes.append(outcome)
            if not isinstance(outcome, Generated):
                continue
            artifact = outcome.artifact
            if artifact.hint_name in result.artifacts:
                _log.warning(
                    "Two candidates are named %s; keeping the first artifact",
                    artifact.class_name,
                )
                continue
            result.artifacts[artifact.hint_name] = artifact

        _log.info(
            "Generated %d artifact(s) for %d candidate(s)",
            len(result.artifacts), len(candidates),
        )
        return result

    def _run_parallel(
        self,
        candidates: List[TypeSymbol],
        cancel: Optional[threading.Event],
    ) -> List[ClassOutcome]:
        outcomes: List[ClassOutcome] = []
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures: List[Future] = [
                pool.submit(process_class, candidate, self.config) for candidate in candidates
            ]
            try:
                for future in futures:
                    self._check_cancel(cancel, len(outcomes), len(candidates))
                    outcomes.append(future.result())
            except GenerationCancelled:
                for future in futures:
                    future.cancel()
                raise
        return outcomes

    @staticmethod
    def _check_cancel(cancel: Optional[threading.Event], done: int, total: int) -> None:
        if cancel is not None and cancel.is_set():
            _log.info("Cancellation requested after %d of %d candidate(s)", done, total)
            raise GenerationCancelled(completed=done, total=total)
