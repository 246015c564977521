"""Pytest configuration and fixtures."""

import pytest

from amm_engine.engine import AMMEngine
from amm_engine.simulation import Simulation, build_simulation


@pytest.fixture
def sim() -> Simulation:
    """A fresh engine wired to empty in-memory collaborators."""
    return build_simulation()


@pytest.fixture
def engine(sim: Simulation) -> AMMEngine:
    return sim.engine
