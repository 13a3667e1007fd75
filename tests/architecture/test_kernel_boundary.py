"""
Kernel Boundary & Layering.

Tests that enforce the architectural boundaries between the packages:

1. ledger_kernel/** may NOT import ledger_config, ledger_engines or
   ledger_services. The kernel never depends upward.

2. ledger_engines/** may NOT import ledger_services or ledger_config.
   Engines are pure and receive everything they need as arguments.

3. ledger_config/** may only depend on the kernel.

4. ledger_kernel/domain/** does no I/O: no YAML, no logging, no
   kernel services.

5. The kernel invariants declaration is complete.

These tests read source code via AST -- they cannot break anything.
"""

import ast
from pathlib import Path

from ledger_kernel.invariants import (
    ALL_KERNEL_INVARIANTS,
    FORBIDDEN_KERNEL_IMPORTS,
    KernelInvariant,
)

ROOT = Path(__file__).resolve().parents[2]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(encoding="utf-8"), filename=str(filepath))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


class TestKernelNoUpwardDependencies:

    def test_packages_exist(self):
        for package in ("ledger_kernel", "ledger_config", "ledger_engines", "ledger_services"):
            assert _python_files(package), f"{package} has no modules"

    def test_kernel_does_not_import_forbidden_packages(self):
        violations = _violations("ledger_kernel", FORBIDDEN_KERNEL_IMPORTS)
        assert not violations, (
            "Kernel boundary violation: ledger_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )


class TestEnginesArePure:

    def test_engines_do_not_import_services_or_config(self):
        violations = _violations("ledger_engines", ("ledger_services", "ledger_config"))
        assert not violations, (
            "Engine boundary violation: ledger_engines/** must not import "
            "services or configuration:\n" + "\n".join(violations)
        )


class TestConfigDependsOnKernelOnly:

    def test_config_does_not_import_engines_or_services(self):
        violations = _violations("ledger_config", ("ledger_engines", "ledger_services"))
        assert not violations, (
            "Config boundary violation: ledger_config/** may only import the "
            "kernel:\n" + "\n".join(violations)
        )


class TestKernelDomainPurity:

    FORBIDDEN_MODULES = (
        "yaml",
        "logging",
        "ledger_kernel.logging_config",
        "ledger_kernel.services",
    )

    def test_domain_has_no_io(self):
        violations = _violations("ledger_kernel/domain", self.FORBIDDEN_MODULES)
        assert not violations, (
            "Domain purity violation: ledger_kernel/domain/** must not do I/O:\n"
            + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# Invariants declaration
# ---------------------------------------------------------------------------


class TestInvariantsDeclaration:

    def test_all_invariants_declared(self):
        assert ALL_KERNEL_INVARIANTS == frozenset(KernelInvariant)
        assert {i.value for i in KernelInvariant} == {
            "paired_mutation",
            "micro_balance",
            "macro_netting",
            "diagram_commutativity",
            "colimit_universality",
        }

    def test_forbidden_imports_cover_every_upper_layer(self):
        assert set(FORBIDDEN_KERNEL_IMPORTS) == {
            "ledger_config",
            "ledger_engines",
            "ledger_services",
        }
