"""Tagged parameter records for each capability."""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..constants import ANY


class _Params(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


def _normalize_wood(value: Any) -> str:
    if value is None or not str(value).strip():
        return ANY
    value = str(value).strip().lower().replace(" ", "_")
    if value.endswith("_log"):
        value = value[: -len("_log")]
    return value


def _positive_or_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value <= 0:
        return None
    return value


class HarvestParams(_Params):
    """Parameters for findTrees."""

    tree_type: str = Field(ANY, alias="treeType")
    max_count: Optional[int] = Field(None, alias="maxCount")

    @field_validator("tree_type", mode="before")
    @classmethod
    def normalize_tree_type(cls, value: Any) -> str:
        return _normalize_wood(value)

    @field_validator("max_count", mode="before")
    @classmethod
    def drop_non_positive(cls, value: Any) -> Any:
        return _positive_or_none(value)


class FollowParams(_Params):
    """Parameters for followPlayer."""

    player_name: Optional[str] = Field(None, alias="playerName")
    distance: Optional[float] = Field(None, alias="distance")

    @field_validator("distance", mode="before")
    @classmethod
    def drop_non_positive(cls, value: Any) -> Any:
        return _positive_or_none(value)


@dataclass(frozen=True)
class TargetSpec:
    """Which entities the engager may attack and how many kills end the task."""

    entity_names: Union[FrozenSet[str], str] = ANY
    desired_kill_count: int = 1

    def __post_init__(self):
        if self.desired_kill_count < 1:
            raise ValueError("desired_kill_count must be at least 1")
        if isinstance(self.entity_names, str) and self.entity_names != ANY:
            raise ValueError(f"entity_names must be a set of names or '{ANY}'")

    @property
    def accepts_any(self) -> bool:
        return self.entity_names == ANY

    def matches(self, name: Optional[str], display_name: Optional[str] = None) -> bool:
        if self.accepts_any:
            return True
        candidates = {name, display_name, display_name.lower() if display_name else None}
        return any(candidate in self.entity_names for candidate in candidates if candidate)


class EngageParams(_Params):
    """Parameters for engage."""

    entity_names: Union[List[str], str] = Field(ANY, alias="entityNames")
    count: int = Field(1, alias="count")
    tool: Optional[str] = Field(None, alias="tool")

    @model_validator(mode="before")
    @classmethod
    def flatten_target(cls, data: Any) -> Any:
        """Accept the nested {"target": {"entityNames": ..., "count": ...}} form"""
        if isinstance(data, dict) and isinstance(data.get("target"), dict):
            target = data["target"]
            flattened = {key: value for key, value in data.items() if key != "target"}
            for key in ("entityNames", "count"):
                if key in target and flattened.get(key) is None:
                    flattened[key] = target[key]
            data = flattened
        return data

    @field_validator("entity_names", mode="before")
    @classmethod
    def normalize_names(cls, value: Any) -> Any:
        if value is None:
            return ANY
        if isinstance(value, str):
            value = value.strip()
            if not value or value.lower() == ANY:
                return ANY
            return [value]
        return [str(name) for name in value]

    @field_validator("count", mode="before")
    @classmethod
    def at_least_one(cls, value: Any) -> Any:
        if value is None or (isinstance(value, (int, float)) and value < 1):
            return 1
        return value

    def target_spec(self) -> TargetSpec:
        names = ANY if self.entity_names == ANY else frozenset(self.entity_names)
        return TargetSpec(entity_names=names, desired_kill_count=self.count)


class InventoryParams(_Params):
    """Parameters for checkInventory."""

    item_type: str = Field("all", alias="itemType")

    @field_validator("item_type", mode="before")
    @classmethod
    def default_all(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            return "all"
        return str(value).strip().lower()


class GiveParams(_Params):
    """Parameters for giveWood."""

    wood_type: str = Field(ANY, alias="woodType")
    amount: Union[int, str] = Field("all", alias="amount")

    @field_validator("wood_type", mode="before")
    @classmethod
    def normalize_wood_type(cls, value: Any) -> str:
        return _normalize_wood(value)

    @field_validator("amount", mode="before")
    @classmethod
    def normalize_amount(cls, value: Any) -> Union[int, str]:
        if value is None:
            return "all"
        if isinstance(value, str):
            stripped = value.strip().lower()
            if stripped.isdigit():
                return int(stripped)
            return "all"
        if isinstance(value, (int, float)) and value >= 1:
            return int(value)
        return "all"


PARAMETER_RECORDS: Dict[str, Type[_Params]] = {
    "findTrees": HarvestParams,
    "followPlayer": FollowParams,
    "engage": EngageParams,
    "checkInventory": InventoryParams,
    "giveWood": GiveParams,
}
