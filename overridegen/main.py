#!/usr/bin/env python3
"""overridegen/main.py — CLI entry-point for the override generator.

Usage examples
--------------
    # Generate forwarding overrides into a build's generated-sources folder
    python -m overridegen generate obj/symbols.json -o obj/generated

    # Print every generated file to stdout instead
    python -m overridegen generate obj/symbols.json

    # Use the declared-type forwarding strategy and four workers
    python -m overridegen generate obj/symbols.json -o out --strategy declared-type --jobs 4

    # Show which classes are candidates and what each one resolves to
    python -m overridegen scan obj/symbols.json

    # Print the trigger attribute declaration
    python -m overridegen attribute

Exit codes
----------
    0   Success.
    1   ``--strict`` was given and no artifact was generated.
    2   Infrastructure failure (missing file, malformed dump, bad config).

The module doubles as ``python -m overridegen`` via the companion
``overridegen/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence, TextIO

from overridegen import __version__
from overridegen.config import ForwardingStrategy, GeneratorConfig, load_config
from overridegen.errors import OverrideGenError
from overridegen.generator import OverrideGenerator
from overridegen.generics import build_generic_map
from overridegen.hierarchy import SkipReason, resolve_source
from overridegen.loader import load_compilation
from overridegen.scanner import find_candidates
from overridegen.selector import select_methods
from overridegen.symbols import Compilation

_log = logging.getLogger("overridegen")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_EMPTY: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the root ``overridegen`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("overridegen")
    root.setLevel(level)
    root.handlers[:] = [handler]


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _build_config(args: argparse.Namespace) -> GeneratorConfig:
    """Configuration file (if any) with command-line overrides applied."""
    config = GeneratorConfig()
    if getattr(args, "config", None):
        config = load_config(_resolve_path(args.config, "configuration"))
    return config.with_overrides(
        forwarding=getattr(args, "strategy", None),
        max_workers=getattr(args, "jobs", None),
        return_unawaited_tasks=True if getattr(args, "return_unawaited_tasks", False) else None,
    )


def _load(args: argparse.Namespace) -> Compilation:
    return load_compilation(_resolve_path(args.symbols, "symbol dump"))


def _write_sources(sources: dict, stream: TextIO) -> None:
    for hint, text in sources.items():
        stream.write(f"// ---- {hint} ----\n")
        stream.write(text)
        if not text.endswith("\n"):
            stream.write("\n")


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_generate(args: argparse.Namespace) -> int:
    """Run the generator and write (or print) every source file."""
    config = _build_config(args)
    compilation = _load(args)

    result = OverrideGenerator(config).run(compilation)

    if args.output is None or args.output == "-":
        _write_sources(result.sources, sys.stdout)
    else:
        result.write_to(Path(args.output).expanduser().resolve())

    for skipped in result.skipped:
        _log.info("Skipped %s: %s", skipped.class_name, skipped.reason.value)

    if args.strict and not result.artifacts:
        _log.warning("No artifact was generated.")
        return EXIT_EMPTY
    return EXIT_OK


def cmd_scan(args: argparse.Namespace) -> int:
    """List candidates with their resolved source type and methods."""
    config = _build_config(args)
    compilation = _load(args)
    out = sys.stdout

    candidates = find_candidates(compilation, config)
    if not candidates:
        out.write("no candidates\n")
        return EXIT_OK

    for candidate in candidates:
        resolution = resolve_source(candidate)
        if isinstance(resolution, SkipReason):
            out.write(f"{candidate.full_name}: skipped ({resolution.value})\n")
            continue
        mapping = build_generic_map(
            resolution.source.type_parameters, candidate.type_parameters
        )
        methods = select_methods(
            resolution.source, config, candidate=candidate, generic_map=mapping
        )
        note = " [same-name base collapsed]" if resolution.collapsed else ""
        out.write(f"{candidate.full_name} <- {resolution.source.full_name}{note}\n")
        if mapping:
            pairs = ", ".join(f"{k}->{v}" for k, v in mapping.items())
            out.write(f"    generic map: {pairs}\n")
        if not methods:
            out.write(f"    skipped ({SkipReason.NO_ELIGIBLE_METHODS.value})\n")
        for method in methods:
            out.write(f"    {method.name}({len(method.parameters)} parameter(s))\n")
    return EXIT_OK


def cmd_attribute(args: argparse.Namespace) -> int:
    """Print the trigger attribute declaration."""
    config = _build_config(args)
    _write_sources(OverrideGenerator(config).post_initialization_sources(), sys.stdout)
    return EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="overridegen",
        description=(
            "overridegen — forwarding-override generator for caller-context\n"
            "parameters ([CallerFilePath], [CallerLineNumber])."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              overridegen generate obj/symbols.json -o obj/generated
              overridegen scan obj/symbols.json
              overridegen attribute
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_config_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--config",
            metavar="FILE",
            help="JSON configuration file.",
        )

    # --- generate ----------------------------------------------------------
    p_generate = subparsers.add_parser(
        "generate",
        help="Generate forwarding overrides from a symbol dump.",
    )
    p_generate.add_argument("symbols", help="Symbol dump (JSON).")
    p_generate.add_argument(
        "-o", "--output",
        metavar="DIR",
        help="Directory for generated files ('-' or omitted: stdout).",
    )
    _add_config_args(p_generate)
    p_generate.add_argument(
        "--strategy",
        choices=[s.value for s in ForwardingStrategy],
        help="How generic type parameters are forwarded.",
    )
    p_generate.add_argument(
        "-j", "--jobs",
        type=int,
        metavar="N",
        help="Process candidates on N worker threads.",
    )
    p_generate.add_argument(
        "--return-unawaited-tasks",
        action="store_true",
        help="Return the base call from non-async Task/ValueTask overrides.",
    )
    p_generate.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when nothing was generated.",
    )
    p_generate.set_defaults(func=cmd_generate)

    # --- scan --------------------------------------------------------------
    p_scan = subparsers.add_parser(
        "scan",
        help="List candidate classes and what they resolve to.",
    )
    p_scan.add_argument("symbols", help="Symbol dump (JSON).")
    _add_config_args(p_scan)
    p_scan.set_defaults(func=cmd_scan)

    # --- attribute ---------------------------------------------------------
    p_attribute = subparsers.add_parser(
        "attribute",
        help="Print the trigger attribute declaration.",
    )
    _add_config_args(p_attribute)
    p_attribute.set_defaults(func=cmd_attribute)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the overridegen CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except OverrideGenError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
