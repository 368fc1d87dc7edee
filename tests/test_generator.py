# tests/test_generator.py
"""
End-to-end tests: symbol graph → candidates → artifacts.
"""

import threading

import pytest

from overridegen.artifacts import Generated, Skipped, attribute_source
from overridegen.config import ForwardingStrategy, GeneratorConfig
from overridegen.errors import GenerationCancelled
from overridegen.generator import OverrideGenerator, process_class
from overridegen.hierarchy import SkipReason
from overridegen.loader import load_compilation, load_compilation_from_mapping
from overridegen.symbols import Virtuality
from tests.conftest import (
    BUG_REPRO_DUMP,
    NATIVE_DUMP,
    caller_method,
    file_path_param,
    make_chain,
    make_compilation,
    make_declaration,
    make_method,
    make_param,
    make_type,
    object_type,
)

BUG_REPRO_ARTIFACT = """\
// <auto-generated/>
// Base type: BaseClass
#nullable enable
using System.Linq.Expressions;
using System.Runtime.CompilerServices;

namespace SourceGenBugTest
{
    partial class BrokenClass
    {
        protected override async Task DoSomethingAsync(long id, [CallerFilePath]string? filePath = null, [CallerLineNumber]int lineNumber = 0)
        {
            await base.DoSomethingAsync(id, filePath, lineNumber);
        }
    }
}
"""


def _run(*declarations, **config):
    return OverrideGenerator(GeneratorConfig(**config)).run(make_compilation(*declarations))


class TestBugRepro:

    def test_artifact_text(self):
        result = OverrideGenerator().run(load_compilation(BUG_REPRO_DUMP))
        assert list(result.artifacts) == ["BrokenClass_Overrides.g.cs"]
        assert result.artifacts["BrokenClass_Overrides.g.cs"].text == BUG_REPRO_ARTIFACT

    def test_awaited_without_return(self):
        result = OverrideGenerator().run(load_compilation(BUG_REPRO_DUMP))
        text = result.artifact_for("BrokenClass").text
        assert "await base.DoSomethingAsync(id, filePath, lineNumber);" in text
        assert "return" not in text

    def test_compute_not_forwarded(self):
        artifact = OverrideGenerator().run(load_compilation(BUG_REPRO_DUMP)).artifact_for("BrokenClass")
        assert artifact.methods == ("DoSomethingAsync",)
        assert "Compute" not in artifact.text

    def test_unmarked_sibling_ignored(self):
        result = OverrideGenerator().run(load_compilation(BUG_REPRO_DUMP))
        assert result.artifact_for("PlainClass") is None

    def test_attribute_source_always_present(self):
        result = OverrideGenerator().run(load_compilation(BUG_REPRO_DUMP))
        hints = list(result.sources)
        assert hints[0] == "GenerateOverrideAttribute.g.cs"
        assert result.sources[hints[0]] == attribute_source()

    def test_idempotent(self):
        comp = load_compilation(BUG_REPRO_DUMP)
        first = OverrideGenerator().run(comp).sources
        second = OverrideGenerator().run(comp).sources
        assert first == second


class TestProcessClass:

    def test_no_base(self):
        outcome = process_class(make_type("Root"))
        assert outcome == Skipped("Root", SkipReason.NO_BASE_TYPE)

    def test_no_grandparent(self):
        outcome = process_class(make_type("Widget", base=object_type()))
        assert isinstance(outcome, Skipped)
        assert outcome.reason is SkipReason.NO_GRANDPARENT

    def test_no_eligible_methods(self):
        candidate = make_chain(methods=[
            make_method("Compute", "int", parameters=[make_param("a"), make_param("b")]),
        ])
        assert process_class(candidate) == Skipped("Widget", SkipReason.NO_ELIGIBLE_METHODS)

    def test_generated(self):
        outcome = process_class(make_chain(methods=[caller_method("Log")]))
        assert isinstance(outcome, Generated)
        assert outcome.class_name == "Widget"
        assert outcome.artifact.source_type == "App.Base"

    def test_global_namespace_has_no_namespace_block(self):
        candidate = make_chain(methods=[caller_method("Log")], namespace="")
        text = process_class(candidate).artifact.text
        assert "namespace" not in text
        assert "\npartial class Widget\n{\n    public override void Log(" in text

    def test_generic_candidate_declares_type_parameters(self):
        candidate = make_chain(
            methods=[caller_method("Log")],
            source_parameters=["TEntity"],
            candidate_parameters=["TOrder"],
        )
        assert "partial class Widget<TOrder>" in process_class(candidate).artifact.text

    def test_methods_separated_by_blank_line(self):
        candidate = make_chain(methods=[caller_method("Log"), caller_method("Trace")])
        text = process_class(candidate).artifact.text
        assert "        }\n\n        public override void Trace(" in text

    def test_abstract_ancestor_method_forwarded(self):
        candidate = make_chain(methods=[caller_method("Log", virtuality=Virtuality.ABSTRACT)])
        assert process_class(candidate).artifact.methods == ("Log",)

    def test_async_void_ancestor_awaits_base_call(self):
        # mirrors the ancestor; the downstream compiler reports the await
        candidate = make_chain(methods=[caller_method("Fire", is_async=True)])
        text = process_class(candidate).artifact.text
        assert "public override async void Fire(" in text
        assert "await base.Fire(message, filePath, lineNumber);" in text

    def test_generic_override_already_written(self):
        def save(entity_type, **kwargs):
            params = [make_param("entity", entity_type), file_path_param()]
            return make_method("Save", parameters=params, **kwargs)

        source = make_type(
            "Repo", "App", base=object_type(),
            methods=[save("TEntity")], type_parameters=["TEntity"],
        )
        candidate = make_type(
            "OrderRepo", "App", base=source, type_parameters=["TOrder"],
            methods=[save("TOrder", virtuality=Virtuality.OVERRIDE)],
        )
        assert process_class(candidate) == Skipped("OrderRepo", SkipReason.NO_ELIGIBLE_METHODS)


class TestGenericHierarchy:

    def test_same_name_tie_break(self, generic_dump):
        result = OverrideGenerator().run(load_compilation_from_mapping(generic_dump))
        artifact = result.artifact_for("OrderRepository")
        assert artifact.source_type == "Core.Repository`1"
        assert "// Base type: Repository" in artifact.text
        assert "partial class OrderRepository<TOrder>" in artifact.text

    def test_parameter_name_strategy(self, generic_dump):
        result = OverrideGenerator().run(load_compilation_from_mapping(generic_dump))
        text = result.artifact_for("OrderRepository").text
        assert 'public override TEntity Save(TEntity entity, [CallerFilePath]string filePath = "")' in text
        assert "return base.Save(entity, filePath);" in text

    def test_declared_type_strategy(self, generic_dump):
        config = GeneratorConfig(forwarding=ForwardingStrategy.DECLARED_TYPE)
        result = OverrideGenerator(config).run(load_compilation_from_mapping(generic_dump))
        text = result.artifact_for("OrderRepository").text
        assert "public override TOrder Save(TOrder entity, " in text


class TestRun:

    def test_unmarked_compilation_yields_attribute_only(self):
        result = _run(make_declaration(make_chain(methods=[caller_method()]), ["Obsolete"]))
        assert result.artifacts == {}
        assert list(result.sources) == ["GenerateOverrideAttribute.g.cs"]

    def test_skipped_outcomes_recorded(self):
        result = _run(make_declaration(make_type("Root"), ["GenerateOverride"]))
        assert [s.reason for s in result.skipped] == [SkipReason.NO_BASE_TYPE]

    def test_duplicate_class_names_keep_first(self):
        first = make_chain(methods=[caller_method("Log")], namespace="One")
        second = make_chain(methods=[caller_method("Trace")], namespace="Two")
        result = _run(
            make_declaration(first, ["GenerateOverride"]),
            make_declaration(second, ["GenerateOverride"]),
        )
        assert len(result.artifacts) == 1
        assert result.artifact_for("Widget").methods == ("Log",)

    def test_parallel_matches_sequential(self):
        decls = []
        for index in range(8):
            base = make_type(f"Base{index}", "App", base=object_type(),
                             methods=[caller_method(f"Log{index}")])
            decls.append(make_declaration(make_type(f"Widget{index}", "App", base=base), ["GenerateOverride"]))
        sequential = _run(*decls)
        parallel = _run(*decls, max_workers=4)
        assert list(parallel.sources) == list(sequential.sources)
        assert parallel.sources == sequential.sources

    @pytest.mark.parametrize("workers", [1, 3])
    def test_cancellation(self, workers):
        cancel = threading.Event()
        cancel.set()
        decls = [
            make_declaration(make_chain(methods=[caller_method()], namespace=f"N{i}"), ["GenerateOverride"])
            for i in range(3)
        ]
        generator = OverrideGenerator(GeneratorConfig(max_workers=workers))
        with pytest.raises(GenerationCancelled) as info:
            generator.run(make_compilation(*decls), cancel=cancel)
        assert info.value.total == 3
        assert info.value.completed == 0

    def test_write_to(self, tmp_path):
        result = OverrideGenerator().run(load_compilation(BUG_REPRO_DUMP))
        written = result.write_to(tmp_path / "out")
        assert sorted(p.name for p in written) == [
            "BrokenClass_Overrides.g.cs",
            "GenerateOverrideAttribute.g.cs",
        ]
        text = (tmp_path / "out" / "BrokenClass_Overrides.g.cs").read_text(encoding="utf-8")
        assert text == BUG_REPRO_ARTIFACT


class TestUnsafeSignatures:

    def test_pointer_parameters_forwarded(self):
        result = OverrideGenerator().run(load_compilation_from_mapping(NATIVE_DUMP))
        text = result.sources["Widget_Overrides.g.cs"]
        assert (
            'public override unsafe void Write(byte* buffer, [CallerFilePath]string filePath = "")'
            in text
        )
        assert "base.Write(buffer, filePath);" in text

    def test_unparsable_member_does_not_block_generation(self):
        result = OverrideGenerator().run(load_compilation_from_mapping(NATIVE_DUMP))
        assert [a.class_name for a in result.artifacts.values()] == ["Widget"]
