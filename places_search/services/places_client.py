from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from places_search.config import Settings
from places_search.logging import logger
from places_search.models.schemas import (
    Outcome,
    PlaceDetails,
    PlacesEnvelope,
    PlaceSummary,
    PlaceType,
    SearchQuery,
    SearchResult,
)
from places_search.services.exceptions import (
    ApiStatusError,
    HttpStatusError,
    InvalidDetailsError,
    ParseError,
    PlacesError,
    TransportError,
)
from places_search.services.mapper import to_place_details, to_place_summary, to_search_result

AUTOCOMPLETE_PATH = "/maps/api/place/autocomplete/json"
TEXT_SEARCH_PATH = "/maps/api/place/textsearch/json"
DETAILS_PATH = "/maps/api/place/details/json"

ZERO_RESULTS = "ZERO_RESULTS"
NOT_FOUND = "NOT_FOUND"

ActivityHook = Callable[[bool], None]


def build_params(
    query: SearchQuery,
    text_param: str = "query",
    place_type: PlaceType = PlaceType.ALL,
) -> Dict[str, str]:
    params = {
        text_param: query.text,
        "key": query.api_key,
        "language": query.language,
    }
    if place_type is not PlaceType.ALL:
        params["types"] = place_type.value
    if query.location is not None and query.location.is_valid:
        params["location"] = query.location.as_param()
        if query.radius > 0:
            radius = query.radius
            params["radius"] = str(int(radius)) if float(radius).is_integer() else str(radius)
    return params


class PlacesClient:
    def __init__(
        self,
        settings: Settings,
        http: Optional[httpx.AsyncClient] = None,
        activity_hook: Optional[ActivityHook] = None,
    ) -> None:
        self.settings = settings
        self.activity_hook = activity_hook
        self._client = http or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        )

    async def __aenter__(self) -> "PlacesClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _notify_activity(self, active: bool) -> None:
        if self.activity_hook is None:
            return
        try:
            self.activity_hook(active)
        except Exception:
            logger.exception("activity_hook_failed", active=active)

    async def _get(self, path: str, params: Dict[str, str]) -> Tuple[str, Dict[str, Any]]:
        """GET ``path``; returns the API status and the body without its non-domain fields."""
        self._notify_activity(True)
        try:
            try:
                resp = await self._client.get(path, params=params)
            except httpx.HTTPError as exc:
                raise TransportError(str(exc) or type(exc).__name__) from exc

            if resp.status_code != 200:
                raise HttpStatusError(resp.status_code)

            try:
                body = resp.json()
            except ValueError as exc:
                raise ParseError("Response body is not JSON") from exc
            if not isinstance(body, dict):
                raise ParseError("Response body is not a JSON object")

            try:
                envelope = PlacesEnvelope.model_validate(body)
            except ValidationError as exc:
                raise ParseError(f"Unexpected response shape: {exc.error_count()} errors") from exc

            if envelope.status not in ("OK", ZERO_RESULTS):
                raise ApiStatusError(envelope.status, envelope.error_message)
            return envelope.status, envelope.payload()
        finally:
            self._notify_activity(False)

    async def _fetch(self, name: str, path: str, params: Dict[str, str]) -> Tuple[str, Dict[str, Any]]:
        try:
            return await self._get(path, params)
        except PlacesError as exc:
            logger.warning("places_request_failed", endpoint=name, kind=exc.kind.value, error=str(exc))
            raise

    async def search(self, query: SearchQuery) -> Outcome:
        """Text search; returns an outcome wrapping ``List[SearchResult]``."""
        params = build_params(query)
        try:
            status, data = await self._fetch("textsearch", TEXT_SEARCH_PATH, params)
        except PlacesError as exc:
            return Outcome.failure(exc)
        results: List[SearchResult] = [to_search_result(entry) for entry in data.get("results", [])]
        if status == ZERO_RESULTS or not results:
            return Outcome.empty([])
        return Outcome.success(results)

    async def autocomplete(self, query: SearchQuery) -> Outcome:
        """Autocomplete; returns an outcome wrapping ``List[PlaceSummary]``."""
        params = build_params(
            query,
            text_param=self.settings.autocomplete_text_param,
            place_type=self.settings.place_type,
        )
        try:
            status, data = await self._fetch("autocomplete", AUTOCOMPLETE_PATH, params)
        except PlacesError as exc:
            return Outcome.failure(exc)
        places: List[PlaceSummary] = [to_place_summary(p) for p in data.get("predictions", [])]
        if status == ZERO_RESULTS or not places:
            return Outcome.empty([])
        return Outcome.success(places)

    async def get_details(self, place_id: str, api_key: Optional[str] = None) -> Outcome:
        """
        Fetch the structured address of a place.

        An unknown id (``NOT_FOUND``, ``ZERO_RESULTS``) or a body without
        ``result`` or ``formatted_address`` is an ``InvalidDetailsError``
        outcome rather than a silent ``None``.
        """
        params = {"placeid": place_id, "key": api_key or self.settings.api_key}
        try:
            status, data = await self._fetch("details", DETAILS_PATH, params)
        except ApiStatusError as exc:
            if exc.status == NOT_FOUND:
                return Outcome.failure(InvalidDetailsError(f"No place found for id {place_id}"))
            return Outcome.failure(exc)
        except PlacesError as exc:
            return Outcome.failure(exc)
        details: Optional[PlaceDetails] = to_place_details(data)
        if details is None:
            logger.warning("places_details_invalid", place_id=place_id, status=status)
            return Outcome.failure(InvalidDetailsError(f"No address found for place {place_id}"))
        return Outcome.success(details)
