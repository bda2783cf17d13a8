import math
from dataclasses import dataclass

from journey_planner.data.config import PlannerConfig, get_config
from journey_planner.errors import PlannerInputError
from journey_planner.models.network import TRANSIT_MODES, TransportMode


@dataclass(frozen=True)
class QueryPreferences:
    """Mode and walking limits for one query.

    ``allowed_modes`` of None means every mode. ``max_single_walk_km`` of
    None means a single footpath is only bounded by the consecutive cap.
    """

    allowed_modes: frozenset[TransportMode] | None
    max_consecutive_walk_km: float
    max_cumulative_walk_km: float
    max_single_walk_km: float | None = None
    walking_allowed: bool = True
    preference_specified: bool = False

    @property
    def requires_connection_scan(self) -> bool:
        """Connection scan handles mode and walking overrides; round-based search does not."""
        return self.preference_specified

    def allows_mode(self, mode: TransportMode) -> bool:
        return self.allowed_modes is None or mode in self.allowed_modes

    @classmethod
    def baseline(cls, config: PlannerConfig | None = None) -> "QueryPreferences":
        """All modes with the configured walking caps."""
        config = config or get_config()
        return cls(
            allowed_modes=None,
            max_consecutive_walk_km=config.max_consecutive_walk_km,
            max_cumulative_walk_km=config.max_cumulative_walk_km,
        )

    @classmethod
    def from_raw_inputs(
        cls,
        modes: str | None = None,
        max_walk_meters: str | float | int | None = None,
        config: PlannerConfig | None = None,
    ) -> "QueryPreferences":
        """Parse caller-supplied preferences.

        Args:
            modes: Comma-separated allow-list such as "bus" or "TRAIN,BUS".
                Unknown tokens are ignored.
            max_walk_meters: Walking limit in metres. Zero or less disables
                walking entirely.
            config: Planner configuration for the default caps.

        Raises:
            PlannerInputError: If no known mode remains or the walking limit
                is not a number.
        """
        config = config or get_config()

        allowed_modes: frozenset[TransportMode] | None = None
        mode_constraint = False
        if modes is not None and modes.strip():
            tokens = {token.strip().upper() for token in modes.split(",")}
            parsed = frozenset(mode for mode in TRANSIT_MODES if mode.value in tokens)
            if not parsed:
                raise PlannerInputError(f"No supported transport mode in {modes!r}")
            if parsed != TRANSIT_MODES:
                allowed_modes = parsed
                mode_constraint = True

        consecutive = config.max_consecutive_walk_km
        cumulative = config.max_cumulative_walk_km
        single: float | None = None
        walking_allowed = True
        walking_constraint = False
        if max_walk_meters is not None and str(max_walk_meters).strip():
            try:
                meters = float(str(max_walk_meters).strip())
            except ValueError as e:
                raise PlannerInputError(f"Invalid maximum walking distance: {max_walk_meters!r}") from e
            if not math.isfinite(meters):
                raise PlannerInputError(f"Invalid maximum walking distance: {max_walk_meters!r}")
            walking_constraint = True
            if meters <= 0:
                walking_allowed = False
                single = consecutive = cumulative = 0.0
            else:
                km = meters / 1000.0
                single = km
                consecutive = min(consecutive, km)
                cumulative = min(cumulative, km)

        return cls(
            allowed_modes=allowed_modes,
            max_consecutive_walk_km=consecutive,
            max_cumulative_walk_km=cumulative,
            max_single_walk_km=single,
            walking_allowed=walking_allowed,
            preference_specified=mode_constraint or walking_constraint,
        )
