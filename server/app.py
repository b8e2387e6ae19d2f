"""FastAPI server for flashround."""

import asyncio
import logging
import os
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from core.catalog import Catalog, load_catalog
from core.config import SessionConfig
from core.errors import NoQuestionAvailable, CatalogError
from core.interfaces import KeyValueStore, MemoryStore
from core.session import SessionDriver
from core.stats import topic_key
from core.vocabulary import default_catalog

from server.file_storage import FileStorage, list_users as list_file_users
from server.postgres_storage import PostgresStorage
from server.scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)


# Pydantic models for API
class UserRequest(BaseModel):
    user_id: str = "default"


class AnswerRequest(BaseModel):
    option_index: int
    user_id: str = "default"


class TopicRequest(BaseModel):
    topic: Optional[str] = None
    user_id: str = "default"


class RoundSizeRequest(BaseModel):
    round_size: int
    user_id: str = "default"


class ReviewRequest(BaseModel):
    source_texts: Optional[list[str]] = None
    user_id: str = "default"


class StateResponse(BaseModel):
    state: dict
    question: Optional[dict]
    last_outcome: Optional[dict]
    summary: Optional[dict]
    last_error: Optional[str]


class AnswerResponse(BaseModel):
    accepted: bool
    ok: Optional[bool] = None
    correct_term: Optional[dict] = None
    points: int = 0
    streak: int = 0
    state: dict


class TopicsResponse(BaseModel):
    topics: list[str]
    selected: Optional[str]


class HardestResponse(BaseModel):
    topic: str
    terms: list[dict]


# Global state (in production, use proper DI)
catalog: Catalog = None
session_config: SessionConfig = None
base_storage: KeyValueStore | None = None
storage_type: str = 'memory'
user_drivers: dict[str, SessionDriver] = {}
user_stores: dict[str, KeyValueStore] = {}
user_locks: dict[str, asyncio.Lock] = {}


app = FastAPI(title="Flashround API", description="Adaptive flashcard quiz rounds")


def make_store(user_id: str) -> KeyValueStore:
    """Create the statistics store for a user according to FLASHROUND_STORAGE."""
    if storage_type == 'file':
        return FileStorage(state_dir=os.environ.get('FLASHROUND_STATE_DIR'), user_id=user_id)
    if storage_type == 'postgres':
        return base_storage.for_user(user_id)
    return MemoryStore()


def get_driver(user_id: str = "default") -> SessionDriver:
    """Get or create the session driver for a user."""
    if user_id not in user_drivers:
        store = make_store(user_id)
        user_stores[user_id] = store
        user_drivers[user_id] = SessionDriver(
            catalog, store, session_config, scheduler=AsyncioScheduler()
        )
        logger.info(f"Created session for {user_id}")
    return user_drivers[user_id]


def get_lock(user_id: str) -> asyncio.Lock:
    if user_id not in user_locks:
        user_locks[user_id] = asyncio.Lock()
    return user_locks[user_id]


def state_response(driver: SessionDriver) -> StateResponse:
    return StateResponse(
        state=driver.snapshot(),
        question=driver.question.to_dict() if driver.question else None,
        last_outcome=driver.last_outcome.to_dict() if driver.last_outcome else None,
        summary=driver.summary.to_dict() if driver.summary else None,
        last_error=str(driver.last_error) if driver.last_error else None
    )


def load_session_config() -> SessionConfig:
    """Default config with environment overrides."""
    config = SessionConfig()
    auto_ms = os.environ.get('FLASHROUND_AUTO_ADVANCE_MS')
    if auto_ms is not None:
        config.auto_advance_ms = int(auto_ms)
    max_options = os.environ.get('FLASHROUND_MAX_OPTIONS')
    if max_options is not None:
        config.max_options = int(max_options)
    config.validate()
    return config


@app.on_event("startup")
async def startup():
    """Load the catalog and choose the storage backend."""
    global catalog, session_config, base_storage, storage_type

    catalog_path = os.environ.get('FLASHROUND_CATALOG')
    if catalog_path:
        try:
            catalog = load_catalog(catalog_path)
        except CatalogError as e:
            raise RuntimeError(f"Cannot start: {e}") from e
        logger.info(f"Loaded {len(catalog)} terms from {catalog_path}")
    else:
        catalog = default_catalog()
        logger.info(f"Using built-in catalog ({len(catalog)} terms)")

    session_config = load_session_config()

    # In-memory storage by default; FLASHROUND_STORAGE=file or postgres to persist
    storage_type = os.environ.get('FLASHROUND_STORAGE', 'memory')
    base_storage = PostgresStorage() if storage_type == 'postgres' else None
    logger.info(f"Using {storage_type} storage")

    user_drivers.clear()
    user_stores.clear()
    user_locks.clear()


@app.on_event("shutdown")
async def shutdown():
    """Close the shared database connection."""
    if base_storage is not None:
        base_storage.close()
        logger.info("Closed database connection")


@app.get("/health")
async def health():
    return {"status": "ok", "service": "flashround"}


@app.get("/api/users")
async def list_users():
    """List users with stored statistics or a live session."""
    if storage_type == 'file':
        users = list_file_users(os.environ.get('FLASHROUND_STATE_DIR'))
    elif storage_type == 'postgres':
        users = base_storage.list_users()
    else:
        users = []
    users = sorted((set(users) | set(user_drivers)) - {'default'})
    return {"users": users}


@app.get("/api/topics", response_model=TopicsResponse)
async def list_topics(user_id: str = "default"):
    driver = get_driver(user_id)
    return TopicsResponse(topics=catalog.topics, selected=driver.state.selected_topic)


@app.get("/api/state", response_model=StateResponse)
async def get_state(user_id: str = "default"):
    """Current phase, counters, question and last outcome."""
    return state_response(get_driver(user_id))


@app.post("/api/start", response_model=StateResponse)
async def start_or_advance(request: UserRequest):
    """Start a round, or move on after feedback."""
    driver = get_driver(request.user_id)
    async with get_lock(request.user_id):
        try:
            driver.start_or_advance()
        except NoQuestionAvailable as e:
            raise HTTPException(status_code=409, detail=f"Cannot build question: {e}")
    return state_response(driver)


@app.post("/api/advance", response_model=StateResponse)
async def advance(request: UserRequest):
    driver = get_driver(request.user_id)
    async with get_lock(request.user_id):
        try:
            driver.advance()
        except NoQuestionAvailable as e:
            raise HTTPException(status_code=409, detail=f"Cannot build question: {e}")
    return state_response(driver)


@app.post("/api/answer", response_model=AnswerResponse)
async def submit_answer(request: AnswerRequest):
    driver = get_driver(request.user_id)
    async with get_lock(request.user_id):
        outcome = driver.submit_answer(request.option_index)
    if outcome is None:
        return AnswerResponse(accepted=False, state=driver.snapshot())
    return AnswerResponse(
        accepted=True,
        ok=outcome.ok,
        correct_term=outcome.correct_term.to_dict(),
        points=outcome.points,
        streak=outcome.streak,
        state=driver.snapshot()
    )


@app.post("/api/topic", response_model=TopicsResponse)
async def set_topic(request: TopicRequest):
    driver = get_driver(request.user_id)
    if request.topic and request.topic not in catalog.topics and request.topic.lower() != 'all':
        raise HTTPException(status_code=404, detail=f"Unknown topic: {request.topic}")
    async with get_lock(request.user_id):
        driver.set_topic(request.topic)
    return TopicsResponse(topics=catalog.topics, selected=driver.state.selected_topic)


@app.post("/api/round-size", response_model=StateResponse)
async def set_round_size(request: RoundSizeRequest):
    driver = get_driver(request.user_id)
    async with get_lock(request.user_id):
        driver.set_round_size(request.round_size)
    return state_response(driver)


@app.post("/api/adaptive", response_model=StateResponse)
async def toggle_adaptive(request: UserRequest):
    driver = get_driver(request.user_id)
    async with get_lock(request.user_id):
        driver.toggle_adaptive()
    return state_response(driver)


@app.post("/api/review", response_model=StateResponse)
async def enter_review(request: ReviewRequest):
    """Replay the given terms (or the last round's hardest) as a review round."""
    driver = get_driver(request.user_id)
    async with get_lock(request.user_id):
        try:
            driver.enter_review_mode(request.source_texts)
        except NoQuestionAvailable as e:
            raise HTTPException(status_code=409, detail=f"Cannot build question: {e}")
    return state_response(driver)


@app.post("/api/restart", response_model=StateResponse)
async def restart(request: UserRequest):
    driver = get_driver(request.user_id)
    async with get_lock(request.user_id):
        driver.restart()
    return state_response(driver)


@app.get("/api/summary")
async def get_summary(user_id: str = "default"):
    driver = get_driver(user_id)
    if driver.summary is None:
        raise HTTPException(status_code=404, detail="No round finished yet")
    return driver.summary.to_dict()


@app.get("/api/hardest", response_model=HardestResponse)
async def get_hardest(user_id: str = "default", count: int = 3):
    driver = get_driver(user_id)
    terms = driver.hardest_terms(count)
    return HardestResponse(
        topic=driver.state.selected_topic or 'All',
        terms=[h._asdict() for h in terms]
    )


@app.get("/api/stats/{topic}")
async def get_topic_stats(topic: str, user_id: str = "default"):
    """Cumulative record for a topic ('All' for rounds played across all topics)."""
    if topic not in catalog.topics and topic.lower() != 'all':
        raise HTTPException(status_code=404, detail=f"Unknown topic: {topic}")
    driver = get_driver(user_id)
    record = driver.stats.record_for(None if topic.lower() == 'all' else topic)
    return {'key': topic_key(None if topic.lower() == 'all' else topic), **record.to_dict()}
