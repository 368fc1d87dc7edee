#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
overridegen/__main__.py
=======================

Entry point for ``python -m overridegen``.

Pipeline
--------

    symbols.json (host export)
        │
        ▼
    ┌──────────┐
    │  Loader   │   JSON → immutable symbol graph
    └────┬─────┘
         │
         ▼
    ┌──────────────┐
    │  Scanner      │   [GenerateOverride] classes
    └────┬─────────┘
         │
         ▼
    ┌──────────────┐
    │  Resolver /   │   source type, eligible methods,
    │  Selector     │   generic map
    └────┬─────────┘
         │
         ▼
    ┌──────────────┐
    │  Synthesizer  │   forwarding overrides
    └────┬─────────┘
         │
         ▼
    <Class>_Overrides.g.cs
"""

from __future__ import annotations

from overridegen.main import main

if __name__ == "__main__":
    raise SystemExit(main())
