"""Pytest configuration and fixtures for FormsGraph tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator, List, Optional

import pytest

from formsgraph.models import ProgramUnitEnriched


FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_package_path() -> Path:
    """PL/SQL package body with three units."""
    return FIXTURES / "orders_pkg.pkb"


@pytest.fixture
def sample_package_source(sample_package_path: Path) -> str:
    return sample_package_path.read_text(encoding="utf-8")


@pytest.fixture
def sample_form_path() -> Path:
    """Oracle Forms XML export with program units and triggers."""
    return FIXTURES / "orders_form.xml"


@pytest.fixture
def temp_config_file(temp_dir: Path, monkeypatch) -> Path:
    """Point the config module at a throwaway config.toml."""
    config_file = temp_dir / "config.toml"
    monkeypatch.setattr("formsgraph.config.BASE_DIR", temp_dir)
    monkeypatch.setattr("formsgraph.config.CONFIG_FILE", config_file)
    return config_file


@pytest.fixture
def make_unit() -> Callable[..., ProgramUnitEnriched]:
    """Factory for enriched program units with sensible defaults."""

    def _make(
        name: str,
        dependencies: Optional[List[str]] = None,
        called_by: Optional[List[str]] = None,
        classification: str = "Business Logic",
        impact_score: str = "low",
        complexity: int = 2,
        risk_flags: Optional[List[str]] = None,
        text: str = "",
        line_count: int = 10,
        is_main_function: bool = False,
    ) -> ProgramUnitEnriched:
        return ProgramUnitEnriched(
            name=name,
            program_unit_type="Procedure",
            text=text or f"PROCEDURE {name} IS\nBEGIN\n  NULL;\nEND;",
            parameters=[],
            return_type=None,
            line_count=line_count,
            dependencies=dependencies or [],
            called_by=called_by or [],
            classification=classification,
            impact_score=impact_score,
            complexity=complexity,
            risk_flags=risk_flags or [],
            is_main_function=is_main_function,
        )

    return _make
