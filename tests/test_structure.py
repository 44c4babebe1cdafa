"""
Structure lint tests.
Verify the atomic component layout and the package conventions.
"""

from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent

COMPONENTS = ("groups", "invite", "limits", "requests")


class TestProjectStructure:
    """Verify project structure follows the component conventions."""

    def test_core_directories_exist(self) -> None:
        for name in ("domain", "ports", "adapters", "components", "services", "rules"):
            assert (PROJECT_ROOT / "src" / name).is_dir(), f"src/{name} missing"

    def test_tests_structure_exists(self) -> None:
        assert (PROJECT_ROOT / "tests" / "unit").is_dir()
        assert (PROJECT_ROOT / "tests" / "integration").is_dir()
        assert (PROJECT_ROOT / "tests" / "regression").is_dir()

    def test_rules_and_migrations_present(self) -> None:
        assert (PROJECT_ROOT / "rules.yaml").is_file()
        assert (PROJECT_ROOT / "migrations" / "001_initial.sql").is_file()


class TestComponentLayout:
    """Each component ships models, ports, component and its own unit tests."""

    def test_component_files(self) -> None:
        for name in COMPONENTS:
            base = PROJECT_ROOT / "src" / "components" / name
            for filename in ("__init__.py", "models.py", "ports.py", "component.py"):
                assert (base / filename).is_file(), f"{name}/{filename} missing"
            assert (base / "tests" / "test_unit.py").is_file(), f"{name} has no unit tests"

    def test_components_do_not_import_adapters(self) -> None:
        """The functional core stays free of I/O adapters."""
        for name in COMPONENTS:
            base = PROJECT_ROOT / "src" / "components" / name
            for module in ("models.py", "ports.py", "component.py"):
                source = (base / module).read_text()
                assert "src.adapters" not in source, f"{name}/{module} imports an adapter"
                assert "sqlite3" not in source, f"{name}/{module} touches sqlite3"
