"""Pool models for weighted and chance-based random draws.

A PoolDefinition names the data collection to draw templates from. A
PoolEntry lists entity groups, each selecting a filtered slice of that
collection. Filters map a dotted template field path to one of:

* a scalar: equality (membership when the template field is a list);
* a list: the template value must equal any element (or share one);
* ``{"$all": [...]}``: a list-valued template field must contain every element;
* ``{"min": x, "max": y}``: inclusive numeric range, either bound optional.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from narrative_engine.core.constants import DEFAULT_COUNT


DrawMode = Literal["weight", "chance"]
CollectionMode = Literal["uniform", "weight", "chance"]


class PoolDefinition(BaseModel):
    """A named source collection that pool entries draw from."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1, description="Pool id referenced by entries")
    source: str = Field(min_length=1, description="Data path id of the source collection")
    filter_fields: list[str] = Field(default_factory=list, description="Template fields usable as filters")
    tags: list[str] = Field(default_factory=list)


class PoolEntityGroup(BaseModel):
    """One weighted or chance-rolled group within a pool entry.

    Attributes:
        id: Optional group id, used in log lines.
        weight: Relative weight for weight mode; the draw default when unset.
        chance: Percentage chance (0-100) for chance mode; the draw default when unset.
        count: Templates drawn when this group is selected.
        filters_include: Every filter must match for a template to be eligible.
        filters_exclude: A template matching any filter is ineligible.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    weight: float | None = Field(default=None, ge=0)
    chance: float | None = Field(default=None, ge=0, le=100)
    count: int = Field(default=DEFAULT_COUNT, ge=0)
    filters_include: dict[str, Any] = Field(default_factory=dict)
    filters_exclude: dict[str, Any] = Field(default_factory=dict)

    @field_validator("filters_include", "filters_exclude", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        """Treat a null filter table as no filters."""
        return {} if value is None else value

    @property
    def label(self) -> str:
        """Name used to identify this group in log lines."""
        return self.id or "<unnamed>"


class PoolEntry(BaseModel):
    """A drawable pool: entity groups over a pool definition's source."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default="", description="Entry id")
    pool: str = Field(min_length=1, description="Pool definition id")
    name: str = ""
    entities: list[PoolEntityGroup] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class PoolSettings(BaseModel):
    """Settings for a single draw_from_pool call.

    Attributes:
        type: "weight" picks one group per draw; "chance" rolls every group.
        draws: Number of draw rounds.
        unique: Never return the same source key twice in one call.
    """

    model_config = ConfigDict(extra="ignore")

    type: DrawMode = "weight"
    draws: int = Field(default=1, ge=0)
    unique: bool = False


class CollectionSettings(BaseModel):
    """Settings for a single draw_from_collection call.

    Attributes:
        type: "uniform", "weight" or "chance" sampling.
        count: Items to draw, or rounds to roll in chance mode.
        unique: Never return the same key twice in one call.
        weight_field: Item field holding the weight in weight mode.
        chance_field: Item field holding the percentage in chance mode.
    """

    model_config = ConfigDict(extra="ignore")

    type: CollectionMode = "uniform"
    count: int = Field(default=1, ge=0)
    unique: bool = False
    weight_field: str = "weight"
    chance_field: str = "chance"


__all__ = [
    "DrawMode",
    "CollectionMode",
    "PoolDefinition",
    "PoolEntityGroup",
    "PoolEntry",
    "PoolSettings",
    "CollectionSettings",
]
