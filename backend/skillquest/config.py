import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings


class EngineConfig(BaseModel):
    """Tunable constants consumed by the selection and gating engine."""

    model_config = ConfigDict(frozen=True)

    neutral_skill_score: float = Field(50.0, ge=0.0, le=100.0)
    weak_signal_window_days: int = Field(14, ge=1)
    weak_signal_recent_days: int = Field(7, ge=0)
    weak_signal_recent_weight: float = Field(1.5, ge=0.0)
    weak_signal_older_weight: float = Field(1.0, ge=0.0)
    weak_signal_multiplier: float = Field(0.3, ge=0.0)
    class_focus_cap: float = Field(0.20, ge=0.0, le=1.0)
    band_tolerance: int = Field(1, ge=0)
    global_gate_min_activities: int = Field(10, ge=0)
    strong_confidence_min_activities: int = Field(20, ge=0)
    diversity_min_activity_types: int = Field(3, ge=0)
    diversity_min_skill_branches: int = Field(4, ge=0)
    max_surfaced_signals: int = Field(5, ge=0)
    hint_penalty: float = Field(5.0, ge=0.0)
    minutes_per_quest: int = Field(5, ge=1)
    skill_score_max_delta: int = Field(20, ge=0)
    debug_class_focus: bool = False


DEFAULT_ENGINE_CONFIG = EngineConfig()


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="SKILLQUEST_DATABASE_URL")
    database_pool_size: int = Field(10, alias="SKILLQUEST_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="SKILLQUEST_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="SKILLQUEST_DATABASE_ECHO")
    database_pool_recycle_seconds: int = Field(1800, alias="SKILLQUEST_DATABASE_POOL_RECYCLE")
    database_busy_timeout_seconds: float = Field(15.0, alias="SKILLQUEST_DATABASE_BUSY_TIMEOUT")
    db_telemetry_interval_seconds: float = Field(30.0, alias="SKILLQUEST_DB_TELEMETRY_INTERVAL")
    log_level: str = Field("INFO", alias="SKILLQUEST_LOG_LEVEL")
    debug_sql: bool = Field(False, alias="SKILLQUEST_DEBUG_SQL")
    explorer_mode_enabled: bool = Field(True, alias="SKILLQUEST_EXPLORER_MODE")
    facilitator_mode_enabled: bool = Field(True, alias="SKILLQUEST_FACILITATOR_MODE")
    debug_class_focus: bool = Field(False, alias="SKILLQUEST_DEBUG_CLASS_FOCUS")
    plan_timezone: str = Field("Asia/Kolkata", alias="SKILLQUEST_PLAN_TIMEZONE")
    expectations_path: Optional[str] = Field(None, alias="SKILLQUEST_EXPECTATIONS_PATH")
    goal_maps_path: Optional[str] = Field(None, alias="SKILLQUEST_GOAL_MAPS_PATH")
    weak_signal_window_days: int = Field(14, alias="SKILLQUEST_WEAK_SIGNAL_WINDOW_DAYS")
    weak_signal_recent_days: int = Field(7, alias="SKILLQUEST_WEAK_SIGNAL_RECENT_DAYS")
    weak_signal_recent_weight: float = Field(1.5, alias="SKILLQUEST_WEAK_SIGNAL_RECENT_WEIGHT")
    weak_signal_older_weight: float = Field(1.0, alias="SKILLQUEST_WEAK_SIGNAL_OLDER_WEIGHT")
    weak_signal_multiplier: float = Field(0.3, alias="SKILLQUEST_WEAK_SIGNAL_MULTIPLIER")
    band_tolerance: int = Field(1, alias="SKILLQUEST_BAND_TOLERANCE")
    global_gate_min_activities: int = Field(10, alias="SKILLQUEST_GLOBAL_GATE_MIN_ACTIVITIES")
    strong_confidence_min_activities: int = Field(20, alias="SKILLQUEST_STRONG_CONFIDENCE_MIN_ACTIVITIES")
    max_surfaced_signals: int = Field(5, alias="SKILLQUEST_MAX_SURFACED_SIGNALS")
    hint_penalty: float = Field(5.0, alias="SKILLQUEST_HINT_PENALTY")
    neutral_skill_score: float = Field(50.0, alias="SKILLQUEST_NEUTRAL_SKILL_SCORE")
    class_focus_cap: float = Field(0.20, alias="SKILLQUEST_CLASS_FOCUS_CAP")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            weak_signal_window_days=self.weak_signal_window_days,
            weak_signal_recent_days=self.weak_signal_recent_days,
            weak_signal_recent_weight=self.weak_signal_recent_weight,
            weak_signal_older_weight=self.weak_signal_older_weight,
            weak_signal_multiplier=self.weak_signal_multiplier,
            band_tolerance=self.band_tolerance,
            global_gate_min_activities=self.global_gate_min_activities,
            strong_confidence_min_activities=self.strong_confidence_min_activities,
            max_surfaced_signals=self.max_surfaced_signals,
            hint_penalty=self.hint_penalty,
            neutral_skill_score=self.neutral_skill_score,
            class_focus_cap=self.class_focus_cap,
            debug_class_focus=self.debug_class_focus,
        )


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
