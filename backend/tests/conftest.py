"""
Corpus Admin - Test Configuration and Fixtures
"""
import os
from datetime import datetime
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment (before anything reads settings)
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_corpus_admin.db'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = TEST_DATABASE_URL
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_FILE'] = ''

from corpus_admin.main import app
from corpus_admin.core.database import Base, get_db
from corpus_admin.core.security import get_password_hash, create_access_token
from corpus_admin.models.user import User, UserRole
from corpus_admin.models.dataset import Dataset
from corpus_admin.services.security_tracker import security_tracker

fake = Faker()

USER_PASSWORD = 'testpassword123'
ADMIN_PASSWORD = 'adminpassword123'

# Test database setup
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Security events are written through their own sessions
security_tracker.session_factory = TestSessionLocal


def sample_document(index: int = 0) -> dict:
    """A stored transcript document in the nested layout"""
    return {
        "file_name": f"{index:03d}-0.cha",
        "metadata": {
            "UTF8": "",
            "PID": f"11312/t-{index:05d}",
            "Languages": "eng",
            "Participants": "PAR Participant, INV Investigator",
            "ID": [
                "eng|Pitt|PAR|74;|male|Control||Participant|||",
                "eng|Pitt|INV|||||Investigator|||",
            ],
            "Media": f"{index:03d}-0, audio",
            "Begin": "",
            "End": "",
        },
        "utterances": [
            {
                "speaker": "INV",
                "text": "just tell me what you see happening there .",
                "timestamp": "0_1500",
            },
            {
                "speaker": "PAR",
                "text": "the boy is taking cookies .",
                "timestamp": "1500_3250",
                "morphology": "det:art|the n|boy aux|be&3S part|take-PRESP n|cookie-PL .",
                "grammar": "1|2|DET 2|4|SUBJ 3|4|AUX 4|0|ROOT 5|4|OBJ 6|4|PUNCT",
            },
        ],
    }


@pytest.fixture
def dataset_document():
    """Builder for stored transcript documents: dataset_document(index)"""
    return sample_document


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session (and schema) for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    await security_tracker.drain()
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()
    await security_tracker.drain()


async def _create_user(db_session: AsyncSession, role: UserRole, password: str, **overrides) -> User:
    now = datetime.utcnow()
    fields = dict(
        email=fake.unique.email().lower(),
        name=fake.name(),
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    user = User(**fields)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a researcher test user"""
    return await _create_user(db_session, UserRole.RESEARCHER, USER_PASSWORD)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await _create_user(db_session, UserRole.ADMIN, ADMIN_PASSWORD)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for extra users: await make_user(role=..., **fields)"""
    async def factory(role: UserRole = UserRole.RESEARCHER, password: str = USER_PASSWORD, **overrides) -> User:
        return await _create_user(db_session, role, password, **overrides)
    return factory


def _auth_headers_for(user: User) -> dict:
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return _auth_headers_for(test_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    return _auth_headers_for(admin_user)


@pytest.fixture
def make_dataset(db_session: AsyncSession):
    """Factory storing a raw dataset row: await make_dataset(document, created_at=...)"""
    async def factory(document: dict = None, created_at: datetime = None) -> Dataset:
        document = document if document is not None else sample_document()
        created_at = created_at or datetime.utcnow()
        dataset = Dataset(
            file_name=document.get("file_name"),
            dataset_metadata=document.get("metadata"),
            utterances=document.get("utterances"),
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(dataset)
        await db_session.commit()
        return dataset
    return factory
