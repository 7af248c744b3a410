import httpx
import pytest
import respx

from places_search.config import Settings
from places_search.models.schemas import Coordinate, PlaceType, SearchQuery
from places_search.services.exceptions import ErrorKind
from places_search.services.places_client import PlacesClient, build_params

HOST = "maps.googleapis.com"
TEXT_SEARCH = "/maps/api/place/textsearch/json"
AUTOCOMPLETE = "/maps/api/place/autocomplete/json"
DETAILS = "/maps/api/place/details/json"


def _query(**kwargs) -> SearchQuery:
    return SearchQuery(text="times square", api_key="test-key", **kwargs)


def test_build_params_without_location_has_no_radius():
    params = build_params(_query(radius=500))

    assert params == {"query": "times square", "key": "test-key", "language": "en"}


def test_build_params_with_location_and_radius():
    params = build_params(_query(location=Coordinate(lat=55.751244, lng=37.618423), radius=10))

    assert params["location"] == "55.751244,37.618423"
    assert params["radius"] == "10"


def test_build_params_with_location_and_zero_radius():
    params = build_params(_query(location=Coordinate(lat=55.751244, lng=37.618423), radius=0))

    assert params["location"] == "55.751244,37.618423"
    assert "radius" not in params


def test_build_params_ignores_invalid_location():
    params = build_params(_query(location=Coordinate(lat=-180, lng=-180), radius=10))

    assert "location" not in params
    assert "radius" not in params


def test_build_params_place_type_and_text_param():
    params = build_params(_query(), text_param="input", place_type=PlaceType.CITIES)

    assert params["input"] == "times square"
    assert params["types"] == "(cities)"
    assert "query" not in params


@pytest.mark.asyncio
@respx.mock
async def test_search_maps_results():
    route = respx.get(host=HOST, path=TEXT_SEARCH).respond(
        200,
        json={
            "html_attributions": [],
            "status": "OK",
            "next_page_token": "token",
            "results": [
                {
                    "name": "Times Square",
                    "formatted_address": "Manhattan, NY 10036, USA",
                    "geometry": {"location": {"lat": 40.758, "lng": -73.9855}},
                },
                {"name": "Unknown spot", "formatted_address": "Somewhere"},
            ],
        },
    )
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.search(_query())

    assert outcome.is_success
    assert [r.main_address for r in outcome.data] == ["Times Square", "Unknown spot"]
    assert not outcome.data[1].has_location
    request = route.calls.last.request
    assert request.url.params["query"] == "times square"
    assert request.url.params["key"] == "test-key"
    assert request.url.params["language"] == "en"


@pytest.mark.asyncio
@respx.mock
async def test_search_zero_results_is_empty_not_error():
    respx.get(host=HOST, path=TEXT_SEARCH).respond(200, json={"status": "ZERO_RESULTS", "results": []})
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.search(_query())

    assert outcome.is_empty
    assert not outcome.is_error
    assert outcome.data == []
    assert outcome.kind is None


@pytest.mark.asyncio
@respx.mock
async def test_search_api_status_error():
    respx.get(host=HOST, path=TEXT_SEARCH).respond(
        200, json={"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}
    )
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.search(_query())

    assert outcome.is_error
    assert outcome.kind is ErrorKind.API_STATUS
    assert outcome.error.status == "REQUEST_DENIED"
    assert "invalid" in str(outcome.error)


@pytest.mark.asyncio
@respx.mock
async def test_search_http_status_error():
    respx.get(host=HOST, path=TEXT_SEARCH).respond(503, json={"status": "OK", "results": []})
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.search(_query())

    assert outcome.kind is ErrorKind.HTTP_STATUS
    assert outcome.error.status_code == 503


@pytest.mark.asyncio
@respx.mock
async def test_search_transport_error():
    respx.get(host=HOST, path=TEXT_SEARCH).mock(side_effect=httpx.ConnectError("connection refused"))
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.search(_query())

    assert outcome.is_error
    assert outcome.kind is ErrorKind.TRANSPORT


@pytest.mark.asyncio
@respx.mock
async def test_search_parse_errors():
    route = respx.get(host=HOST, path=TEXT_SEARCH)
    async with PlacesClient(Settings(api_key="test-key")) as client:
        route.respond(200, text="<html>not json</html>")
        not_json = await client.search(_query())
        route.respond(200, json=["OK"])
        not_object = await client.search(_query())
        route.respond(200, json={"status": "OK", "results": "nope"})
        bad_shape = await client.search(_query())
        route.respond(200, json={"results": []})
        no_status = await client.search(_query())

    for outcome in (not_json, not_object, bad_shape, no_status):
        assert outcome.kind is ErrorKind.PARSE


@pytest.mark.asyncio
@respx.mock
async def test_activity_hook_brackets_each_request():
    respx.get(host=HOST, path=TEXT_SEARCH).respond(500)
    calls = []
    async with PlacesClient(Settings(api_key="test-key"), activity_hook=calls.append) as client:
        await client.search(_query())

    assert calls == [True, False]


@pytest.mark.asyncio
@respx.mock
async def test_autocomplete_uses_configured_params():
    route = respx.get(host=HOST, path=AUTOCOMPLETE).respond(
        200,
        json={
            "status": "OK",
            "predictions": [
                {
                    "place_id": "p1",
                    "structured_formatting": {"main_text": "Times Square", "secondary_text": "NY"},
                },
                {"place_id": "p2"},
            ],
        },
    )
    settings = Settings(api_key="test-key", place_type=PlaceType.ADDRESS)
    async with PlacesClient(settings) as client:
        outcome = await client.autocomplete(_query())

    assert outcome.is_success
    assert [p.id for p in outcome.data] == ["p1", "p2"]
    assert outcome.data[1].main_address == ""
    params = route.calls.last.request.url.params
    assert params["query"] == "times square"
    assert params["types"] == "address"


@pytest.mark.asyncio
@respx.mock
async def test_autocomplete_input_param():
    route = respx.get(host=HOST, path=AUTOCOMPLETE).respond(200, json={"status": "ZERO_RESULTS"})
    settings = Settings(api_key="test-key", autocomplete_text_param="input")
    async with PlacesClient(settings) as client:
        outcome = await client.autocomplete(_query())

    assert outcome.is_empty
    params = route.calls.last.request.url.params
    assert params["input"] == "times square"
    assert "query" not in params
    assert "types" not in params


@pytest.mark.asyncio
@respx.mock
async def test_get_details_success():
    route = respx.get(host=HOST, path=DETAILS).respond(
        200,
        json={
            "html_attributions": [],
            "status": "OK",
            "result": {
                "formatted_address": "90 Main St",
                "address_components": [
                    {"types": ["street_number"], "short_name": "90", "long_name": "90"}
                ],
                "geometry": {"location": {"lat": 1.5, "lng": 2.5}},
            },
        },
    )
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.get_details("place-1", "other-key")

    assert outcome.is_success
    assert outcome.data.street_number == "90"
    assert outcome.data.coordinate == Coordinate(lat=1.5, lng=2.5)
    params = route.calls.last.request.url.params
    assert params["placeid"] == "place-1"
    assert params["key"] == "other-key"


@pytest.mark.asyncio
@respx.mock
async def test_get_details_without_result_is_invalid_details():
    respx.get(host=HOST, path=DETAILS).respond(200, json={"status": "OK"})
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.get_details("place-1")

    assert outcome.is_error
    assert outcome.kind is ErrorKind.INVALID_DETAILS


@pytest.mark.asyncio
@respx.mock
async def test_get_details_unknown_place_is_invalid_details():
    route = respx.get(host=HOST, path=DETAILS)
    async with PlacesClient(Settings(api_key="test-key")) as client:
        route.respond(200, json={"status": "NOT_FOUND"})
        not_found = await client.get_details("gone")
        route.respond(200, json={"status": "ZERO_RESULTS"})
        zero = await client.get_details("gone")
        route.respond(200, json={"status": "OVER_QUERY_LIMIT"})
        over_limit = await client.get_details("gone")

    assert not_found.kind is ErrorKind.INVALID_DETAILS
    assert zero.kind is ErrorKind.INVALID_DETAILS
    assert over_limit.kind is ErrorKind.API_STATUS


@pytest.mark.asyncio
@respx.mock
async def test_search_survives_overflowing_coordinates():
    respx.get(host=HOST, path=TEXT_SEARCH).respond(
        200,
        content=(
            b'{"status": "OK", "results": [{"name": "Far", '
            b'"geometry": {"location": {"lat": 1' + b"0" * 400 + b', "lng": 1}}}]}'
        ),
        headers={"Content-Type": "application/json"},
    )
    async with PlacesClient(Settings(api_key="test-key")) as client:
        outcome = await client.search(_query())

    assert outcome.is_success
    assert not outcome.data[0].has_location
