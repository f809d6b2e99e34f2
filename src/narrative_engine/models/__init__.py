"""Pydantic models for content, pools and session state."""

from __future__ import annotations

from narrative_engine.models.content import Choice, ContentLine
from narrative_engine.models.pools import (
    CollectionMode,
    CollectionSettings,
    DrawMode,
    PoolDefinition,
    PoolEntityGroup,
    PoolEntry,
    PoolSettings,
)
from narrative_engine.models.state import DungeonState, SessionState


__all__ = [
    # Content
    "ContentLine",
    "Choice",
    # Pools
    "DrawMode",
    "CollectionMode",
    "PoolDefinition",
    "PoolEntityGroup",
    "PoolEntry",
    "PoolSettings",
    "CollectionSettings",
    # State
    "DungeonState",
    "SessionState",
]
