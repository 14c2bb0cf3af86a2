import os
import sys
from dataclasses import replace
from pathlib import Path

import pytest

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from aviary.config import SimulationConfig, WindConfig, default_agent_physics  # noqa: E402


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-config-tests",
        action="store_true",
        default=False,
        help="run tests that check the shipped configuration files",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "config_change: marks tests that should only run when files under config/ change",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-config-tests"):
        return

    skip_marker = pytest.mark.skip(
        reason="Run only when configuration is modified (use --run-config-tests)",
    )

    for item in items:
        if "config_change" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def config_dir() -> Path:
    return ROOT / "config"


@pytest.fixture
def small_config() -> SimulationConfig:
    """A light world that still exercises flocking, wind and respawning."""
    return SimulationConfig(
        seed=11,
        initial_population=24,
        max_population=40,
        spawn_radius=60.0,
        agent=replace(default_agent_physics(), life_expectancy=40, history_length=6),
        wind=WindConfig(multiplier=0.2),
    )
