"""In-memory simulation wiring.

Builds an engine backed by the in-memory collaborators, for tests, the API
service and local experimentation.
"""

from __future__ import annotations

from dataclasses import dataclass

from amm_engine.collaborators import (
    DEFAULT_CUSTODY,
    InMemoryAssetBank,
    InMemoryShareToken,
    RecordingEventSink,
)
from amm_engine.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from amm_engine.engine import AMMEngine


@dataclass
class Simulation:
    """An engine together with the in-memory collaborators it talks to."""

    engine: AMMEngine
    bank: InMemoryAssetBank
    share_token: InMemoryShareToken
    events: RecordingEventSink


def build_simulation(
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    custody: str = DEFAULT_CUSTODY,
) -> Simulation:
    """Create a fresh engine with empty in-memory collaborators."""
    bank = InMemoryAssetBank(custody=custody)
    share_token = InMemoryShareToken()
    events = RecordingEventSink()
    engine = AMMEngine(
        transfers=bank,
        share_token=share_token,
        events=events,
        config=config,
    )
    return Simulation(engine=engine, bank=bank, share_token=share_token, events=events)


_default_simulation: Simulation | None = None


def get_default_simulation() -> Simulation:
    """Get the process-wide simulation used by the API service."""
    global _default_simulation
    if _default_simulation is None:
        _default_simulation = build_simulation()
    return _default_simulation
