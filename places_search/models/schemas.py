from __future__ import annotations

from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from places_search.services.exceptions import ErrorKind, PlacesError
from places_search.utils.geo import haversine_miles

T = TypeVar("T")


class PlaceType(str, Enum):
    ALL = ""
    GEOCODE = "geocode"
    ADDRESS = "address"
    ESTABLISHMENT = "establishment"
    REGIONS = "(regions)"
    CITIES = "(cities)"


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @property
    def is_valid(self) -> bool:
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lng <= 180.0

    def as_param(self) -> str:
        return f"{self.lat},{self.lng}"


# Explicit "no coordinate" value; (0, 0) is a real place in the Gulf of Guinea.
INVALID_COORDINATE = Coordinate(lat=-180.0, lng=-180.0)


class PlaceSummary(BaseModel):
    """A single autocomplete prediction."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    main_address: str = ""
    secondary_address: str = ""

    def __str__(self) -> str:
        return f"{self.main_address}, {self.secondary_address}"


class SearchResult(BaseModel):
    """A single text-search entry as shown in the result list."""

    model_config = ConfigDict(frozen=True)

    main_address: str = ""
    secondary_address: str = ""
    coordinate: Coordinate = INVALID_COORDINATE
    location: Coordinate = INVALID_COORDINATE

    @model_validator(mode="before")
    @classmethod
    def derive_location(cls, data: Any) -> Any:
        # location always follows coordinate; a caller-supplied location is ignored
        if isinstance(data, dict):
            coordinate = data.get("coordinate")
            if isinstance(coordinate, dict):
                try:
                    coordinate = Coordinate.model_validate(coordinate)
                except ValidationError:
                    return data
            if coordinate is None or (isinstance(coordinate, Coordinate) and not coordinate.is_valid):
                coordinate = INVALID_COORDINATE
            data = {**data, "coordinate": coordinate, "location": coordinate}
        return data

    @property
    def has_location(self) -> bool:
        return self.location.is_valid

    def distance_miles(self, origin: Optional[Coordinate]) -> Optional[float]:
        """Great-circle distance from ``origin`` in miles, one decimal place."""
        if origin is None or not origin.is_valid or not self.has_location:
            return None
        distance = haversine_miles(origin.lat, origin.lng, self.location.lat, self.location.lng)
        return round(distance, 1)

    def format_distance(self, origin: Optional[Coordinate]) -> str:
        distance = self.distance_miles(origin)
        if distance is None:
            return ""
        return f"{distance} m"

    def __str__(self) -> str:
        return f"{self.main_address}, {self.secondary_address}"


class PlaceDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    formatted_address: str
    street_number: Optional[str] = None
    route: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None

    locality: Optional[str] = None
    sub_locality: Optional[str] = None
    administrative_area: Optional[str] = None
    administrative_area_code: Optional[str] = None
    sub_administrative_area: Optional[str] = None

    coordinate: Optional[Coordinate] = None

    def __str__(self) -> str:
        lat = self.coordinate.lat if self.coordinate else 0
        lng = self.coordinate.lng if self.coordinate else 0
        return f"\nAddress: {self.formatted_address}\ncoordinate: ({lat}, {lng})\n"


class SearchQuery(BaseModel):
    text: str
    api_key: str
    language: str = "en"
    location: Optional[Coordinate] = None
    radius: float = Field(default=0.0, description="Bias radius in meters, only sent with a location")


# Raw response envelope, validated before any entry is mapped
class PlacesEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: str
    error_message: Optional[str] = None
    html_attributions: List[Any] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    results: List[Any] = Field(default_factory=list)
    predictions: List[Any] = Field(default_factory=list)

    def payload(self) -> dict:
        """The body without the fields that carry no domain value."""
        return self.model_dump(exclude={"html_attributions", "status", "next_page_token"})


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


class Outcome(BaseModel, Generic[T]):
    """Result of a Places operation: success, empty, or a typed error."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: OutcomeStatus
    data: Optional[T] = None
    error: Optional[PlacesError] = None

    @classmethod
    def success(cls, data: Any) -> "Outcome":
        return cls(status=OutcomeStatus.SUCCESS, data=data)

    @classmethod
    def empty(cls, data: Any = None) -> "Outcome":
        return cls(status=OutcomeStatus.EMPTY, data=data)

    @classmethod
    def failure(cls, error: PlacesError) -> "Outcome":
        return cls(status=OutcomeStatus.ERROR, error=error)

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        return self.status is OutcomeStatus.EMPTY

    @property
    def is_error(self) -> bool:
        return self.status is OutcomeStatus.ERROR

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None
