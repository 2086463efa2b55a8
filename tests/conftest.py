"""
TravelPlaces Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    ├── mock_db_session:  Mock credential store session (no real DB needed)
    ├── dataset_dir:      Temporary directory for local dataset copies
    ├── dataset_factory:  Builds dataset bytes from a list of rows
    ├── jp_dataset:       Bytes of a real SQLite dataset with sample attractions
    ├── store_factory:    The FakeObjectStore class
    ├── fake_store:       In-memory object store holding jp.db and its images,
    │                     installed into the shared materializer and resolver
    └── test_client:      HTTPX AsyncClient for API endpoint testing

Datasets are real SQLite files built with the same SQLAlchemy table the
application queries, so ordering and filtering run against SQLite itself.
"""

import itertools
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any app imports
_TEST_ROOT = tempfile.mkdtemp(prefix="travelplaces_test_")
os.environ["DATASET_DIR"] = os.path.join(_TEST_ROOT, "datasets")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/users.db"
os.environ["S3_BUCKET"] = "test-bucket"
os.environ["PASSWORD_SALT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import Column, MetaData, Table, create_engine  # noqa: E402

from app.models.attraction import attractions  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Dataset Builders
# ══════════════════════════════════════════════════════════════════════════

ROW_DEFAULTS: Dict[str, Any] = {
    "name": None,
    "region": None,
    "county": None,
    "overview": None,
    "duration": None,
    "details": None,
    "position": None,
    "total_reviews": 0,
    "rating": None,
    "positive_reviews": 0,
    "website": None,
    "image1": 0,
    "image2": 0,
    "image3": 0,
}

SAMPLE_ROWS: List[Dict[str, Any]] = [
    {"id": 1, "name": "Kinkaku-ji", "region": "Kyoto", "county": "Kansai",
     "total_reviews": 500, "rating": "95%", "positive_reviews": 480,
     "overview": "Golden pavilion", "duration": "1 hour", "website": "https://example.org/kinkakuji",
     "image1": 1, "image2": 1, "image3": 0},
    {"id": 2, "name": "Fushimi Inari", "region": "Kyoto", "county": "Kansai",
     "total_reviews": 1200, "rating": "100%", "positive_reviews": 1190, "image1": 1},
    {"id": 3, "name": "Osaka Castle", "region": "Osaka", "county": "Kansai",
     "total_reviews": 300, "rating": "88%", "positive_reviews": 250, "image1": 0},
    {"id": 4, "name": "Senso-ji", "region": "Tokyo", "county": "Kanto",
     "total_reviews": 900, "rating": "100%", "positive_reviews": 880, "image1": 1},
    {"id": 5, "name": "Tokyo Tower", "region": "Tokyo", "county": "Kanto",
     "total_reviews": 40, "rating": "72%", "positive_reviews": 30, "image1": 1},
    {"id": 6, "name": "Nikko", "region": "Tochigi", "county": "Kanto",
     "total_reviews": 5, "rating": "n/a", "positive_reviews": 2, "image1": 0},
]

# Objects present in the fake bucket besides the dataset itself.
# jp-5-image1.png is deliberately absent although row 5 flags image1.
SAMPLE_IMAGES: Dict[str, bytes] = {
    "jp-1-image1.png": b"\x89PNG kinkakuji-1",
    "jp-1-image2.png": b"\x89PNG kinkakuji-2",
    "jp-2-image1.png": b"\x89PNG inari-1",
    "jp-4-image1.png": b"\x89PNG sensoji-1",
}


def make_row(**fields: Any) -> Dict[str, Any]:
    """Full attractions row with defaults for every column not given."""
    row = dict(ROW_DEFAULTS)
    row.update(fields)
    return row


def build_dataset(
    directory: Path,
    rows: Iterable[Dict[str, Any]],
    name: str = "dataset.db",
    column_types: Optional[Dict[str, Any]] = None,
) -> bytes:
    """
    Create a SQLite dataset file with the given rows and return its bytes.

    column_types overrides the declared type of a column; a value of None
    leaves the column out, like dataset variants that lack it.
    """
    path = Path(directory) / name
    engine = create_engine(f"sqlite:///{path}")
    table = attractions
    if column_types:
        table = Table(
            attractions.name,
            MetaData(),
            *(
                Column(c.name, column_types.get(c.name, c.type), primary_key=c.primary_key)
                for c in attractions.columns
                if column_types.get(c.name, c.type) is not None
            ),
        )
    table.metadata.create_all(engine)
    full_rows = [
        {key: value for key, value in make_row(**row).items() if key in table.c}
        for row in rows
    ]
    if full_rows:
        with engine.begin() as conn:
            conn.execute(table.insert(), full_rows)
    engine.dispose()
    return path.read_bytes()


class FakeObjectStore:
    """In-memory stand-in for ObjectStoreGateway: fetch() is a dict lookup."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.calls: List[tuple] = []

    async def fetch(self, bucket: str, key: str) -> Optional[bytes]:
        self.calls.append((bucket, key))
        return self.objects.get(key)

    async def health_check(self, bucket: str) -> bool:
        return True

    def fetched_keys(self) -> List[str]:
        return [key for _, key in self.calls]


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async credential store session.

    Usage:
        async def test_login(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = user
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def dataset_dir(tmp_path):
    """Fresh directory for local dataset copies."""
    directory = tmp_path / "datasets"
    directory.mkdir()
    return directory


@pytest.fixture
def dataset_factory(tmp_path):
    """Callable building dataset bytes from a list of (partial) rows and optional column_types."""
    build_dir = tmp_path / "build"
    build_dir.mkdir(exist_ok=True)
    counter = itertools.count()

    def _build(rows: Iterable[Dict[str, Any]], column_types: Optional[Dict[str, Any]] = None) -> bytes:
        return build_dataset(build_dir, rows, name=f"dataset-{next(counter)}.db", column_types=column_types)

    return _build


@pytest.fixture
def jp_dataset(dataset_factory) -> bytes:
    """Bytes of a SQLite dataset holding SAMPLE_ROWS."""
    return dataset_factory(SAMPLE_ROWS)


@pytest.fixture
def store_factory():
    """The FakeObjectStore class, for tests that assemble their own bucket."""
    return FakeObjectStore


@pytest.fixture
def fake_store(jp_dataset, monkeypatch) -> FakeObjectStore:
    """
    Fake bucket with jp.db and SAMPLE_IMAGES, wired into the shared
    dataset materializer and image resolver used by the routes.
    """
    from app.services.dataset_service import dataset_materializer
    from app.services.image_service import image_resolver

    store = FakeObjectStore({"jp.db": jp_dataset, **SAMPLE_IMAGES})
    monkeypatch.setattr(dataset_materializer, "gateway", store)
    monkeypatch.setattr(image_resolver, "gateway", store)
    return store


@pytest_asyncio.fixture
async def test_client():
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from app.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
