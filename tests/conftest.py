"""
iptvcatalog Test Configuration

Shared fixtures and configuration for all tests.
"""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from iptvcatalog.config import FetchConfig, IngestConfig, IPTVCatalogConfig
from iptvcatalog.database.connection import enable_sqlite_foreign_keys, get_db
from iptvcatalog.database.models.base import Base
from iptvcatalog.ingest.entities import Channel, Episode, Movie, Series
from iptvcatalog.main import create_app


# ============ Database Fixtures ============


@pytest.fixture(scope="function")
def engine():
    """Create a test database engine (in-memory SQLite)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """Create a new database session for each test."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============ Configuration Fixtures ============


@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="function")
def fast_fetch_config(temp_dir: Path) -> FetchConfig:
    """Fetch settings with every delay zeroed and a private staging dir."""
    return FetchConfig(
        staging_dir=str(temp_dir / "staging"),
        retry_backoff_seconds=0.0,
        server_error_delay=0.0,
        auth_error_delay=0.0,
        timeout_delay=0.0,
        reset_delay=0.0,
        network_error_delay=0.0,
        connect_timeout=5.0,
        read_timeout=5.0,
    )


@pytest.fixture(scope="function")
def test_config(fast_fetch_config: FetchConfig) -> IPTVCatalogConfig:
    """Application config for tests: small batches, no delays."""
    return IPTVCatalogConfig(
        fetch=fast_fetch_config,
        ingest=IngestConfig(batch_size=2, yield_interval=10),
    )


@pytest.fixture(scope="function")
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_file = temp_dir / "config.yaml"
    config_content = """
server:
  host: "127.0.0.1"
  port: 8500
  debug: true

database:
  url: "sqlite:///:memory:"

logging:
  level: "DEBUG"

ingest:
  batch_size: 1000
  blocked_group_patterns:
    - "XXX"

fetch:
  max_attempts: 5
  retry_backoff_seconds: 1.5
"""
    config_file.write_text(config_content)
    return config_file


# ============ FastAPI Test Client Fixtures ============


@pytest.fixture(scope="function")
def app(db_session: Session) -> FastAPI:
    """Create a test FastAPI application."""
    app = create_app()

    # Override the database dependency
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    return app


@pytest.fixture(scope="function")
def client(app: FastAPI) -> TestClient:
    """Create a synchronous test client (lifespan not run; the database is overridden)."""
    return TestClient(app)


# ============ Ingestion Fixtures ============


class RecordingSink:
    """In-memory ParseCallback that records every batch it receives."""

    def __init__(self):
        self.channels: list[Channel] = []
        self.movies: list[Movie] = []
        self.series: list[Series] = []
        self.episodes: list[Episode] = []
        self.groups: set[str] | None = None
        self.calls: list[tuple[str, int]] = []
        self.series_ids: dict[str, int] = {}
        self._next_series_id = 100

    async def on_channel_batch(self, channels: list[Channel]) -> None:
        self.calls.append(("channels", len(channels)))
        self.channels.extend(channels)

    async def on_movie_batch(self, movies: list[Movie]) -> None:
        self.calls.append(("movies", len(movies)))
        self.movies.extend(movies)

    async def on_series_batch(self, series: list[Series]) -> dict[str, int]:
        self.calls.append(("series", len(series)))
        self.series.extend(series)
        assigned = {}
        for item in series:
            assigned[item.name] = self._next_series_id
            self._next_series_id += 1
        self.series_ids.update(assigned)
        return assigned

    async def on_episode_batch(self, episodes: list[Episode]) -> None:
        self.calls.append(("episodes", len(episodes)))
        self.episodes.extend(episodes)

    async def on_groups_found(self, groups: set[str]) -> None:
        self.calls.append(("groups", len(groups)))
        self.groups = set(groups)


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Fresh in-memory sink."""
    return RecordingSink()


@pytest.fixture
def write_m3u(temp_dir: Path):
    """Write M3U text to a temporary file and return its path."""

    def _write(content: str, name: str = "playlist.m3u") -> Path:
        path = temp_dir / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


SAMPLE_PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="bbc1.uk" tvg-name="BBC One" tvg-logo="http://logo/bbc1.png" group-title="UK News",BBC One
http://provider.example/live/user/pass/1.ts
#EXTINF:-1 tvg-id="" tvg-name="##### SPORTS #####" group-title="UK Sports",##### SPORTS #####
http://provider.example/live/user/pass/2.ts
#EXTINF:-1 tvg-id="" tvg-name="Inception (2010)" tvg-logo="http://logo/inception.jpg" group-title="VOD | Action",Inception (2010)
http://provider.example/movie/user/pass/3.mkv
#EXTINF:-1 tvg-name="The Office S01E01" group-title="Series | Comedy",The Office S01E01
http://provider.example/series/user/pass/4.mkv
#EXTINF:-1 tvg-name="The Office S01E02" group-title="Series | Comedy",The Office S01E02
http://provider.example/series/user/pass/5.mkv
#EXTINF:-1 tvg-name="Hot Stuff" group-title="XXX Adults",Hot Stuff
http://provider.example/live/user/pass/6.ts
"""


@pytest.fixture
def sample_playlist() -> str:
    """Small mixed playlist: two channels, one movie, one series with two episodes, one blocked."""
    return SAMPLE_PLAYLIST


# ============ Pytest Configuration ============


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "network: Network access required")
