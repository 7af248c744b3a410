from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Dict, List, Optional
from uuid import uuid4

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel

from places_search.config import Settings, load_settings
from places_search.logging import configure_logging, logger
from places_search.models.schemas import Coordinate, PlaceDetails, PlaceSummary, SearchQuery, SearchResult
from places_search.services.exceptions import ErrorKind
from places_search.services.places_client import PlacesClient
from places_search.services.search_flow import SearchFlowController, SearchState

# Load environment variables
load_dotenv()

_places_client: Optional[PlacesClient] = None


@lru_cache
def get_settings() -> Settings:
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings


def get_places_client(settings: Settings = Depends(get_settings)) -> PlacesClient:
    global _places_client
    if _places_client is None:
        _places_client = PlacesClient(settings)
    return _places_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _places_client
    yield
    for session in list(sessions.values()):
        await session.controller.aclose()
    sessions.clear()
    if _places_client is not None:
        await _places_client.aclose()
        _places_client = None


# Initialize FastAPI app
app = FastAPI(title="Places Search", version="1.0.0", lifespan=lifespan)


# Pydantic models
class TextUpdate(BaseModel):
    text: str


class SessionCreated(BaseModel):
    session_id: str
    placeholder: str
    active: bool


class ResultRow(SearchResult):
    """A result as listed to the user, with its distance from the host."""

    distance_miles: Optional[float] = None
    distance_label: str = ""

    @classmethod
    def from_result(cls, result: SearchResult, origin: Optional[Coordinate]) -> "ResultRow":
        return cls(
            main_address=result.main_address,
            secondary_address=result.secondary_address,
            coordinate=result.coordinate,
            distance_miles=result.distance_miles(origin),
            distance_label=result.format_distance(origin),
        )


class SessionView(BaseModel):
    session_id: str
    text: str
    state: SearchState
    active: bool
    results: List[ResultRow]
    selected: Optional[SearchResult] = None
    error: Optional[str] = None


class SearchSession:
    """One search box: a flow controller plus what the host received from it."""

    def __init__(self, session_id: str, client: PlacesClient, settings: Settings) -> None:
        self.session_id = session_id
        self.last_seen = datetime.now()
        self.selected: Optional[SearchResult] = None
        self.controller = SearchFlowController(client, settings, on_select=self._did_select)

    def _did_select(self, result: SearchResult) -> None:
        self.selected = result
        logger.info("place_selected", session_id=self.session_id, place=str(result))

    def touch(self) -> None:
        self.last_seen = datetime.now()

    def expired(self, now: datetime) -> bool:
        return now - self.last_seen >= SESSION_TTL

    def view(self) -> SessionView:
        controller = self.controller
        origin = controller.settings.current_location
        return SessionView(
            session_id=self.session_id,
            text=controller.text,
            state=controller.state,
            active=controller.active,
            results=[ResultRow.from_result(r, origin) for r in controller.results],
            selected=self.selected,
            error=str(controller.last_error) if controller.last_error else None,
        )


# In-memory search sessions, dropped when idle for SESSION_TTL or when over MAX_SESSIONS
sessions: Dict[str, SearchSession] = {}
SESSION_TTL = timedelta(minutes=20)
MAX_SESSIONS = 200


async def _drop_session(session_id: str) -> None:
    session = sessions.pop(session_id, None)
    if session is not None:
        await session.controller.aclose()


async def evict_sessions(reserve: int = 0) -> None:
    """Close expired sessions, then the least recently used ones until `reserve` slots are free."""
    now = datetime.now()
    for session_id in [sid for sid, s in sessions.items() if s.expired(now)]:
        await _drop_session(session_id)
        logger.info("session_expired", session_id=session_id)
    while sessions and len(sessions) + reserve > MAX_SESSIONS:
        oldest = min(sessions.values(), key=lambda s: s.last_seen)
        await _drop_session(oldest.session_id)
        logger.info("session_evicted", session_id=oldest.session_id)


async def get_session(session_id: str) -> SearchSession:
    await evict_sessions()
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    session.touch()
    return session


# Routes

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "timestamp": datetime.now().isoformat()}


@app.post("/sessions", response_model=SessionCreated)
async def create_session(
    settings: Settings = Depends(get_settings),
    client: PlacesClient = Depends(get_places_client),
) -> SessionCreated:
    """Open a search box"""
    await evict_sessions(reserve=1)
    session_id = uuid4().hex
    session = SearchSession(session_id, client, settings)
    sessions[session_id] = session
    return SessionCreated(
        session_id=session_id,
        placeholder=settings.search_placeholder,
        active=session.controller.active,
    )


@app.get("/sessions/{session_id}", response_model=SessionView)
async def read_session(session_id: str) -> SessionView:
    session = await get_session(session_id)
    return session.view()


@app.put("/sessions/{session_id}/text", response_model=SessionView)
async def update_text(session_id: str, body: TextUpdate) -> SessionView:
    """Type into the search box and wait for the resulting list"""
    session = await get_session(session_id)
    session.controller.activate()
    await session.controller.update_text(body.text)
    return session.view()


@app.post("/sessions/{session_id}/select/{index}", response_model=SearchResult)
async def select_result(session_id: str, index: int) -> SearchResult:
    session = await get_session(session_id)
    try:
        return session.controller.select(index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    session = await get_session(session_id)
    await _drop_session(session.session_id)
    return {"status": "closed"}


@app.get("/places/autocomplete", response_model=List[PlaceSummary])
async def autocomplete(
    text: str = Query(..., min_length=1),
    settings: Settings = Depends(get_settings),
    client: PlacesClient = Depends(get_places_client),
) -> List[PlaceSummary]:
    """Autocomplete predictions for partial text"""
    query = SearchQuery(
        text=text,
        api_key=settings.api_key,
        language=settings.language,
        location=settings.search_bias,
        radius=settings.radius,
    )
    outcome = await client.autocomplete(query)
    if outcome.is_error:
        raise HTTPException(status_code=502, detail=f"Autocomplete failed: {outcome.error}")
    return outcome.data or []


@app.get("/places/{place_id}", response_model=PlaceDetails)
async def place_details(
    place_id: str,
    settings: Settings = Depends(get_settings),
    client: PlacesClient = Depends(get_places_client),
) -> PlaceDetails:
    """Structured address of a place"""
    outcome = await client.get_details(place_id, settings.api_key)
    if outcome.is_error:
        if outcome.kind is ErrorKind.INVALID_DETAILS:
            raise HTTPException(status_code=404, detail=str(outcome.error))
        raise HTTPException(status_code=502, detail=f"Details lookup failed: {outcome.error}")
    return outcome.data


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
