"""
IoT Tech Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── upload_dir / data_file: Temporary paths for attachments and the JSON store
    ├── file_service: FileService writing into upload_dir
    ├── file_repository: CaseStudyRepository on the JSON file store
    ├── session_factory: AsyncSession factory on a fresh SQLite database
    ├── repository: parametrized over both backends
    ├── sample_image_bytes: Fake image content for upload tests
    └── test_client: HTTPX AsyncClient wired to a file-backed repository
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports
_TEST_ROOT = tempfile.mkdtemp(prefix="iottech_test_")
os.environ["DATABASE_URL"] = ""
os.environ["DATA_FILE"] = os.path.join(_TEST_ROOT, "data", "casestudies.json")
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["PUBLIC_DIR"] = os.path.join(_TEST_ROOT, "public")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.database import Base
from app.models.case_study import CaseStudy  # noqa: F401  registers the table
from app.services.case_study_repository import CaseStudyRepository
from app.services.file_service import FileService
from app.services.persistence import PersistenceAdapter
from app.services.stores import FileCaseStudyStore


@pytest.fixture
def upload_dir():
    """The directory the /uploads static mount serves from."""
    os.makedirs(settings.upload_dir, exist_ok=True)
    return settings.upload_dir


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / "data" / "casestudies.json")


@pytest.fixture
def file_service(upload_dir):
    return FileService(upload_dir=upload_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes for upload tests.

    Only the extension is checked on upload, so this does not need to be a
    decodable image.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def file_repository(data_file, file_service):
    """Repository whose database is never connected: every call hits the JSON file."""
    adapter = PersistenceAdapter(
        status=lambda: False,
        session_factory=lambda: pytest.fail("database session opened while offline"),
        file_store=FileCaseStudyStore(data_file),
    )
    return CaseStudyRepository(adapter=adapter, files=file_service)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Sessions on a fresh SQLite file with the case_studies table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture(params=["file", "database"])
async def repository(request, tmp_path, file_repository, data_file, file_service):
    """Runs a test once per backend; both must behave identically."""
    if request.param == "file":
        yield file_repository
        return

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'repo.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    adapter = PersistenceAdapter(
        status=lambda: True,
        session_factory=async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
        file_store=FileCaseStudyStore(data_file),
    )
    yield CaseStudyRepository(adapter=adapter, files=file_service)
    await engine.dispose()


@pytest_asyncio.fixture
async def test_client(file_repository):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    The case study routes get a repository on a per-test JSON file, so tests
    never see each other's records.
    """
    from app.main import app
    from app.services.case_study_repository import get_case_study_repository

    app.dependency_overrides[get_case_study_repository] = lambda: file_repository
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
