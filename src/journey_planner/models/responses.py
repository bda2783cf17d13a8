from pydantic import BaseModel, Field

# Stop Search Models


class StopResult(BaseModel):
    stop_id: int
    stop_name: str
    stop_lat: float | None = Field(default=None, description="None when coordinates are unresolved")
    stop_lon: float | None = None
    routes: list[str] = Field(default_factory=list, description="Route ids serving this stop")
    distance_meters: float | None = Field(
        default=None, description="Distance from search coordinates (geo search only)"
    )


class SearchStopsResponse(BaseModel):
    stops: list[StopResult]
    count: int = Field(description="Number of stops returned")
    total_matches: int | None = Field(
        default=None, description="Total matches before limit applied (if known)"
    )


# Journey Planning Models


class ItineraryStep(BaseModel):
    """One stop visit, in travel order."""

    trip_id: str = Field(description='Trip id, or "WALK" / "SOURCE"')
    stop_id: int = Field(description="-1 and -2 mark the caller's start and end coordinates")
    stop_name: str
    time: str = Field(description="HH:MM, hours may exceed 23 after midnight")
    lat: float
    lon: float
    walking: bool
    walk_distance_km: float = Field(description="Footpath length, 0 when not walking")
    mode: str = Field(description="TRAIN, BUS, WALK or UNKNOWN")


class LegStop(BaseModel):
    stop_id: int
    stop_name: str
    time: str
    lat: float
    lon: float


class JourneyLeg(BaseModel):
    """A ride on one vehicle or one walk."""

    trip_id: str
    mode: str
    operator: str | None = Field(default=None, description="METRORAIL, MYCITI or GOLDENARROW")
    line: str | None = Field(default=None, description="Route id for rides")

    from_stop_name: str
    to_stop_name: str
    departure_time: str = Field(description="HH:MM format")
    departure_time_formatted: str
    arrival_time: str = Field(description="HH:MM format")
    arrival_time_formatted: str

    duration_minutes: int
    distance_km: float
    stops: list[LegStop] = Field(description="Every stop on the leg, endpoints included")


class JourneySummary(BaseModel):
    departure_time: str
    arrival_time: str
    duration_minutes: int
    transfers: int = Field(description="Vehicle changes (rides - 1)")
    total_walk_km: float
    day_type: str = Field(description="WEEKDAY, SATURDAY, SUNDAY or PUBLIC_HOLIDAY")
    algorithm: str = Field(description="raptor or csa")


class StopResolutionInfo(BaseModel):
    """How an origin or destination was resolved."""

    query: str = Field(description="Original user query, or 'lat,lon'")
    resolved_stop_id: int | None = None
    resolved_stop_name: str | None = None
    confidence: str | None = Field(default=None, description="exact, high, medium, low")
    match_type: str | None = Field(default=None, description="exact_name, contains, fuzzy_name")
    distance_meters: float | None = Field(
        default=None, description="Distance to the nearest stop (coordinate queries only)"
    )
    resolved: bool
    error: str | None = None


class PlanJourneyResponse(BaseModel):
    """Response from plan_journey tool."""

    # Resolution status
    origin_resolution: StopResolutionInfo | None = None
    destination_resolution: StopResolutionInfo | None = None

    # Results
    steps: list[ItineraryStep] = Field(default_factory=list)
    legs: list[JourneyLeg] = Field(default_factory=list)
    summary: JourneySummary | None = None

    # Query context
    departure_time: str | None = Field(default=None, description="Requested departure, HH:MM")
    date: str | None = None

    # Status
    count: int = Field(default=0, description="Number of itinerary steps")
    success: bool
    error: str | None = None
    error_type: str | None = Field(default=None, description="input or internal")


class ReloadNetworkResponse(BaseModel):
    success: bool
    data_dir: str
    stats: dict[str, int] = Field(default_factory=dict)
    error: str | None = None
