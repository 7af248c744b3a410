"""
Map raw Places JSON entries into domain records.

Every function here is total: malformed input yields defaults or ``None``,
never an exception.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from places_search.models.schemas import (
    INVALID_COORDINATE,
    Coordinate,
    PlaceDetails,
    PlaceSummary,
    SearchResult,
)

SHORT = "short_name"
LONG = "long_name"

# field -> (component type, form); the first matching component wins
ADDRESS_COMPONENT_FIELDS = {
    "street_number": ("street_number", SHORT),
    "route": ("route", SHORT),
    "postal_code": ("postal_code", LONG),
    "country": ("country", LONG),
    "country_code": ("country", SHORT),
    "locality": ("locality", LONG),
    "sub_locality": ("sublocality", LONG),
    "administrative_area": ("administrative_area_level_1", LONG),
    "administrative_area_code": ("administrative_area_level_1", SHORT),
    "sub_administrative_area": ("administrative_area_level_2", LONG),
}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _read_coordinate(entry: Dict[str, Any]) -> Optional[Coordinate]:
    location = _as_dict(_as_dict(entry.get("geometry")).get("location"))
    lat, lng = location.get("lat"), location.get("lng")
    if not (_is_number(lat) and _is_number(lng)):
        return None
    try:
        lat, lng = float(lat), float(lng)
    except OverflowError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return Coordinate(lat=lat, lng=lng)


def find_component(components: List[Any], component_type: str, form: str) -> Optional[str]:
    """
    Value of ``form`` for the first component tagged with ``component_type``.

    Example component: ``{"long_name": "90", "short_name": "90", "types": ["street_number"]}``
    """
    for component in components:
        if not isinstance(component, dict):
            continue
        types = component.get("types")
        if isinstance(types, list) and component_type in types:
            value = component.get(form)
            return value if isinstance(value, str) else None
    return None


def to_place_summary(prediction: Any) -> PlaceSummary:
    prediction = _as_dict(prediction)
    formatting = _as_dict(prediction.get("structured_formatting"))
    return PlaceSummary(
        id=_as_str(prediction.get("place_id")),
        main_address=_as_str(formatting.get("main_text")),
        secondary_address=_as_str(formatting.get("secondary_text")),
    )


def to_search_result(entry: Any) -> SearchResult:
    entry = _as_dict(entry)
    coordinate = _read_coordinate(entry)
    if coordinate is None or not coordinate.is_valid:
        coordinate = INVALID_COORDINATE
    return SearchResult(
        main_address=_as_str(entry.get("name")),
        secondary_address=_as_str(entry.get("formatted_address")),
        coordinate=coordinate,
        location=coordinate,
    )


def to_place_details(body: Any) -> Optional[PlaceDetails]:
    result = _as_dict(body).get("result")
    if not isinstance(result, dict):
        return None
    formatted_address = result.get("formatted_address")
    if not isinstance(formatted_address, str):
        return None

    fields: Dict[str, Any] = {}
    components = result.get("address_components")
    if isinstance(components, list):
        for field, (component_type, form) in ADDRESS_COMPONENT_FIELDS.items():
            fields[field] = find_component(components, component_type, form)

    return PlaceDetails(
        formatted_address=formatted_address,
        coordinate=_read_coordinate(result),
        **fields,
    )
