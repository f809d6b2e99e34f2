"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the narrative engine test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator

    from narrative_engine.engine.session import NarrativeSession


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from narrative_engine.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "NARRATIVE_ENGINE_DEBUG": "true",
        "NARRATIVE_ENGINE_RESOLVER_MAX_TEMPLATE_DEPTH": "4",
        "NARRATIVE_ENGINE_DRAW_SEED": "99",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def session() -> NarrativeSession:
    """Provide an initialized, seeded session standing in the village dungeon.

    Returns:
        A NarrativeSession with built-ins registered.
    """
    from narrative_engine.core.config import Settings
    from narrative_engine.engine.rng import SeededRandom
    from narrative_engine.engine.session import NarrativeSession

    narrative = NarrativeSession(Settings(), rng=SeededRandom(seed=1234)).init()
    narrative.state.current_dungeon_id = "village"
    return narrative


@pytest.fixture
def sample_lines() -> list[dict[str, Any]]:
    """Provide content lines for the village dungeon, templates included."""
    return [
        {"id": "$greeting", "val": "Welcome, *traveler*."},
        {"id": "$weather", "val": "if{_state(weather) = rain}It is raining. else{}The sky is clear. fi{}"},
        {"id": "$nested", "val": "|$greeting| |$weather|"},
        {"id": "$loop", "val": "again |$loop|"},
        {"id": "intro", "val": 'elder: |$greeting| {"flag": "met_elder=1"}'},
    ]


@pytest.fixture
def content_session(session: NarrativeSession, sample_lines: list[dict[str, Any]]) -> NarrativeSession:
    """Provide a session with the sample lines loaded."""
    session.add_lines("village", sample_lines)
    session.add_lines("castle", [{"id": "$motto", "val": "Stone endures."}])
    return session


# =============================================================================
# Pool Fixtures
# =============================================================================


@pytest.fixture
def loot_templates() -> dict[str, dict[str, Any]]:
    """Provide a loot collection keyed by template id."""
    return {
        "dagger": {"name": "Dagger", "type": "weapon", "tier": 1, "tags": ["blade", "light"]},
        "sword": {"name": "Sword", "type": "weapon", "tier": 2, "tags": ["blade"]},
        "axe": {"name": "Axe", "type": "weapon", "tier": 2, "tags": ["heavy"]},
        "shield": {"name": "Shield", "type": "armor", "tier": 1, "tags": ["heavy"]},
        "helm": {"name": "Helm", "type": "armor", "tier": 3, "tags": ["heavy", "rare"]},
        "potion": {"name": "Potion", "type": "consumable", "tier": 1, "tags": []},
        "elixir": {"name": "Elixir", "type": "consumable", "tier": 3, "tags": ["rare"]},
    }


@pytest.fixture
def pool_session(session: NarrativeSession, loot_templates: dict[str, dict[str, Any]]) -> NarrativeSession:
    """Provide a session with loot data, a pool definition and pool entries."""
    session.add_data("items/loot", loot_templates)
    session.add_pool_definitions([{"id": "loot", "source": "items/loot", "filter_fields": ["type", "tier"]}])
    session.add_pool_entries(
        [
            {
                "id": "chest",
                "pool": "loot",
                "entities": [
                    {"id": "weapons", "weight": 3, "filters_include": {"type": "weapon"}},
                    {"id": "armor", "weight": 1, "filters_include": {"type": "armor"}},
                ],
            },
            {
                "id": "hoard",
                "pool": "loot",
                "entities": [
                    {"id": "rares", "chance": 100, "count": 2, "filters_include": {"tags": "rare"}},
                    {"id": "never", "chance": 0, "filters_include": {"type": "weapon"}},
                ],
            },
            {
                "id": "greedy",
                "pool": "loot",
                "entities": [
                    {"id": "too_many", "weight": 100, "count": 5, "filters_include": {"type": "armor"}},
                    {"id": "cheap", "weight": 1, "filters_include": {"tier": {"max": 1}}},
                ],
            },
            {"id": "orphan", "pool": "missing_pool", "entities": [{}]},
        ]
    )
    return session
