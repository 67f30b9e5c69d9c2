"""
Import-boundary enforcement.

1. Kernel isolation  -- cashplan_kernel/** imports nothing above it.
2. Engine purity     -- cashplan_engines/** may not import the database,
                        ORM, selectors, services or config layers.
3. Engine no-impure  -- engines never read the wall clock or environment.
4. Config placement  -- cashplan_config/** may not import services.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[str]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted(glob.glob(f"{ROOT / package}/**/*.py", recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _extract_attribute_calls(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    return [
        (node.lineno, f"{node.value.id}.{node.attr}")
        for node in ast.walk(tree)
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name)
    ]


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path):
            if _matches_any(module, forbidden):
                found.append(f"{Path(path).relative_to(ROOT)}:{lineno} imports {module}")
    return found


class TestKernelIsolation:
    def test_kernel_imports_nothing_above_it(self):
        assert _python_files("cashplan_kernel")
        violations = _violations(
            "cashplan_kernel",
            ("cashplan_engines", "cashplan_config", "cashplan_services"),
        )
        assert violations == [], "\n".join(violations)


class TestEnginePurity:
    FORBIDDEN = (
        "sqlalchemy",
        "yaml",
        "cashplan_kernel.db",
        "cashplan_kernel.models",
        "cashplan_kernel.selectors",
        "cashplan_kernel.services",
        "cashplan_config",
        "cashplan_services",
    )

    def test_engines_import_no_io_layers(self):
        violations = _violations("cashplan_engines", self.FORBIDDEN)
        assert violations == [], "\n".join(violations)

    def test_engines_never_read_clock_or_environment(self):
        impure = {"datetime.now", "datetime.utcnow", "date.today", "os.environ", "os.getenv"}
        found = [
            f"{Path(path).relative_to(ROOT)}:{lineno} uses {ref}"
            for path in _python_files("cashplan_engines")
            for lineno, ref in _extract_attribute_calls(path)
            if ref in impure
        ]
        assert found == [], "\n".join(found)


class TestConfigPlacement:
    def test_config_does_not_import_services(self):
        violations = _violations("cashplan_config", ("cashplan_services",))
        assert violations == [], "\n".join(violations)
