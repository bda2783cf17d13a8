from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PlannerConfig(BaseSettings):
    """Configuration for dataset location, walking limits and name matching.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    data_dir: str = Field(default="CapeTownTransitData", alias="JOURNEY_DATA_DIR")

    # Walking limits (kilometres) and speed
    max_consecutive_walk_km: float = Field(default=0.8, alias="JOURNEY_MAX_CONSECUTIVE_WALK_KM")
    max_cumulative_walk_km: float = Field(default=6.0, alias="JOURNEY_MAX_CUMULATIVE_WALK_KM")
    walking_speed_kmh: float = Field(default=5.0, alias="JOURNEY_WALKING_SPEED_KMH")
    endpoint_walk_threshold_km: float = Field(
        default=0.02, alias="JOURNEY_ENDPOINT_WALK_THRESHOLD_KM"
    )
    stop_lookup_radius_km: float = Field(default=0.8, alias="JOURNEY_STOP_LOOKUP_RADIUS_KM")

    # Round-based search bound
    max_rounds: int = Field(default=5, alias="JOURNEY_MAX_ROUNDS")

    # Coordinate matcher policy
    match_min_contains_length: int = Field(default=5, alias="JOURNEY_MATCH_MIN_CONTAINS_LENGTH")
    match_max_prefix_length_diff: int = Field(
        default=2, alias="JOURNEY_MATCH_MAX_PREFIX_LENGTH_DIFF"
    )

    # Stop lookup from user queries
    stop_match_min_score: float = Field(default=70.0, alias="JOURNEY_STOP_MATCH_MIN_SCORE")


@lru_cache
def get_config() -> PlannerConfig:
    """Get planner configuration (cached singleton).

    Returns:
        PlannerConfig with values from .env file or environment variables.
    """
    return PlannerConfig()
