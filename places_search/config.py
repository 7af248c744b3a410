"""Runtime configuration based on environment variables."""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from places_search.models.schemas import Coordinate, PlaceType

PLACES_BASE = "https://maps.googleapis.com"


class Settings(BaseModel):
    api_key: str
    base_url: str = PLACES_BASE
    language: str = "en"
    place_type: PlaceType = PlaceType.ALL
    location_bias: Optional[Coordinate] = None
    current_location: Optional[Coordinate] = Field(
        default=None,
        description="Where the host is; origin of result distances and the fallback location bias.",
    )
    radius: float = Field(default=0.0, ge=0)
    search_placeholder: str = "Enter Address"
    timeout_seconds: float = Field(default=20.0, gt=0)
    debounce_seconds: float = Field(default=0.0, ge=0)
    autocomplete_text_param: str = Field(
        default="query",
        description="Name of the text parameter sent to autocomplete ('query' or 'input').",
    )
    log_level: str = "INFO"

    @field_validator("api_key")
    @classmethod
    def api_key_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Provide your API key")
        return v

    @field_validator("location_bias", "current_location", mode="before")
    @classmethod
    def parse_location(cls, v):
        # "<lat>,<lng>" as it appears in the environment
        if isinstance(v, str):
            if not v.strip():
                return None
            parts = v.split(",")
            if len(parts) != 2:
                raise ValueError("locations must look like '<lat>,<lng>'")
            return Coordinate(lat=float(parts[0]), lng=float(parts[1]))
        return v

    @property
    def search_bias(self) -> Optional[Coordinate]:
        return self.location_bias or self.current_location

    @field_validator("autocomplete_text_param")
    @classmethod
    def known_text_param(cls, v: str) -> str:
        if v not in ("query", "input"):
            raise ValueError("autocomplete text param must be 'query' or 'input'")
        return v


ENV_FIELDS = {
    "PLACES_BASE_URL": "base_url",
    "PLACES_LANGUAGE": "language",
    "PLACES_PLACE_TYPE": "place_type",
    "PLACES_LOCATION_BIAS": "location_bias",
    "PLACES_CURRENT_LOCATION": "current_location",
    "PLACES_RADIUS": "radius",
    "PLACES_SEARCH_PLACEHOLDER": "search_placeholder",
    "PLACES_TIMEOUT": "timeout_seconds",
    "PLACES_DEBOUNCE_SECONDS": "debounce_seconds",
    "PLACES_AUTOCOMPLETE_TEXT_PARAM": "autocomplete_text_param",
    "PLACES_LOG_LEVEL": "log_level",
}


def load_settings() -> Settings:
    load_dotenv()

    key = os.getenv("PLACES_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Missing PLACES_API_KEY.\n"
            "Add it to a .env file locally or export it in the environment.\n"
            "Example: export PLACES_API_KEY='YOUR_KEY'"
        )

    values = {"api_key": key}
    for env_name, field in ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            values[field] = raw
    # PLACES_PLACE_TYPE="" means all types and is already the default
    return Settings(**values)
