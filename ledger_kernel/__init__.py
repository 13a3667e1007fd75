"""
Ledger Kernel - categorical double-entry core

A multi-agent double-entry ledger with:
- Paired T-account mutations per event
- Per-agent (micro) and per-relationship (macro) balance invariants
- Closed registries for debt relationships and monetary instruments
- Structured, fail-fast error reporting
"""

__version__ = "0.1.0"
