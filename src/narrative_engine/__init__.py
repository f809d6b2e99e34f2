"""Narrative Engine - directive resolution and rule evaluation for branching stories.

Content is authored as text with embedded directives: placeholders,
if/else chains, template references and JSON action blocks. The engine
resolves a line against the session's flags and registries into display
text, the actions it carries and its speaker. A separate draw engine serves
weighted and chance-based loot and encounter pools.

Example:
    >>> from narrative_engine import NarrativeSession
    >>>
    >>> session = NarrativeSession().init()
    >>> session.state.current_dungeon_id = "village"
    >>>
    >>> # Conditions are ordinary functions prefixed with "_"
    >>> session.register_condition("_gt", lambda a, b: float(a) > float(b))
    >>>
    >>> result = session.resolve_string(
    ...     'elder: if{_gt(5, 3) = true}**Welcome**, friend. fi{}{"flag": "met=1"}'
    ... )
    >>> result.speaker, result.output, result.actions
    ('elder', '<i>Welcome</i>, friend. ', {'flag': 'met=1'})

Modules:
    core: Configuration, logging, exceptions and constants.
    models: Pydantic V2 models for content, pools and session state.
    engine: Evaluator, registries, resolver, dispatcher, draws and the session.
"""

from __future__ import annotations

# Core
from narrative_engine.core.config import Settings, get_settings
from narrative_engine.core.exceptions import NarrativeEngineError
from narrative_engine.core.logging import configure_logging, get_logger

# Models
from narrative_engine.models import (
    Choice,
    CollectionSettings,
    ContentLine,
    DungeonState,
    PoolDefinition,
    PoolEntityGroup,
    PoolEntry,
    PoolSettings,
    SessionState,
)

# Engine
from narrative_engine.engine import (
    ConditionMode,
    DrawEngine,
    NarrativeSession,
    ResolveResult,
    SeededRandom,
)


__version__ = "0.1.0"

__all__ = [
    # Metadata
    "__version__",
    # Core
    "Settings",
    "get_settings",
    "NarrativeEngineError",
    "configure_logging",
    "get_logger",
    # Models
    "Choice",
    "CollectionSettings",
    "ContentLine",
    "DungeonState",
    "PoolDefinition",
    "PoolEntityGroup",
    "PoolEntry",
    "PoolSettings",
    "SessionState",
    # Engine
    "ConditionMode",
    "DrawEngine",
    "NarrativeSession",
    "ResolveResult",
    "SeededRandom",
]
