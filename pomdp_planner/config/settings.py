"""
Runtime settings.

Read from the environment (prefix PLANNER_, nested fields joined with "__"):

    PLANNER_DB_PATH=./data/plans.db
    PLANNER_LOG_LEVEL=DEBUG
    PLANNER_MAX_DEPTH=4
    PLANNER_WEIGHTS__LAMBDA2=0.5
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pomdp_planner.models.config import PlannerConfig, ScoringWeights

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class PlannerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLANNER_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    db_path: str = ":memory:"
    log_level: str = "INFO"
    log_json: bool = True
    log_dir: str | None = None

    weights: ScoringWeights = ScoringWeights()
    max_actions_to_consider: int = Field(default=5, ge=0)
    max_depth: int = Field(default=3, ge=0)
    exploration_factor: float = 1.4
    pruning_threshold: float = 0.1
    session_timeout_minutes: int = Field(default=30, ge=0)

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}, got '{v}'"
            )
        return upper

    def to_planner_config(self) -> PlannerConfig:
        return PlannerConfig(
            weights=self.weights,
            max_actions_to_consider=self.max_actions_to_consider,
            max_depth=self.max_depth,
            exploration_factor=self.exploration_factor,
            pruning_threshold=self.pruning_threshold,
            session_timeout_minutes=self.session_timeout_minutes,
        )


@lru_cache(maxsize=1)
def get_settings() -> PlannerSettings:
    return PlannerSettings()
