"""
Pytest configuration and shared fixtures for the runtyper test suite.

Most tests build a Tree directly with the node builder, write annotations as
Flow text through the type parser, run the rewrite and compare printed code.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from runtyper.compiler.driver import CompilerDriver
from runtyper.frontend.type_syntax import parse_type
from runtyper.shared.builders import NodeBuilder
from runtyper.shared.nodes import Tree


# =============================================================================
# Session-scoped fixtures
# =============================================================================

@pytest.fixture(scope="session")
def session_driver():
    """Driver with default options; it keeps no per-run state."""
    return CompilerDriver()


# =============================================================================
# Function-scoped fixtures (default - one per test)
# =============================================================================

@pytest.fixture
def tree():
    """Fresh arena for one test."""
    return Tree()


@pytest.fixture
def b(tree):
    """Node builder over the test's tree."""
    return NodeBuilder(tree)


@pytest.fixture
def ty(tree):
    """Parse Flow annotation text into type nodes of the test's tree."""
    def _parse(text: str):
        return parse_type(tree, text)
    return _parse


@pytest.fixture(autouse=True)
def default_library(monkeypatch):
    """Tests expect the default runtime library name."""
    monkeypatch.delenv("RUNTYPER_LIBRARY", raising=False)


def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "cli: marks tests that go through the command line entry point"
    )
