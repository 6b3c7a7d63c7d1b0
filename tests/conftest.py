"""
Pytest fixtures for portal tests.

Every test gets its own file-backed SQLite database so the app's per-request
sessions and the fixtures' session see the same data.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-0123456789")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from portal.config import get_settings
from portal.database import get_db
from portal.api.middleware.rate_limit import get_limiter
from portal.kernel.identity.identity_service import IdentityService
from portal.kernel.identity.jwt import JWTManager
from portal.kernel.identity.password import PasswordHasher, hash_password
from portal.kernel.identity.session import Session
from portal.kernel.models import Base, Profile, RoleAssignment, User, UserRole

DEFAULT_PASSWORD = "SecurePass123"


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """bcrypt at its minimum cost; the default makes every sign-in slow."""
    monkeypatch.setattr(PasswordHasher, "rounds", 4)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    get_limiter().reset()
    yield
    get_limiter().reset()


@pytest.fixture
def settings():
    return get_settings()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh database per test, foreign keys enforced."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        await session.rollback()


async def create_account(
    db: AsyncSession,
    email: str,
    role: UserRole,
    *,
    full_name: Optional[str] = None,
    password: str = DEFAULT_PASSWORD,
    is_active: bool = True,
    is_verified: bool = True,
) -> Session:
    """Insert identity, role and profile rows directly and return the Session."""
    user = User(email=email, password_hash=hash_password(password))
    db.add(user)
    await db.flush()
    db.add(RoleAssignment(user_id=user.id, role=role))
    db.add(Profile(
        user_id=user.id,
        full_name=full_name or email.split("@")[0].title(),
        email=email,
        is_active=is_active,
        is_verified=is_verified,
    ))
    await db.commit()
    return await IdentityService(db).load_session(user.id)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Session:
    return await create_account(db_session, "admin@university.edu", UserRole.ADMIN, full_name="Site Admin")


@pytest_asyncio.fixture
async def teacher(db_session: AsyncSession) -> Session:
    return await create_account(db_session, "teacher@university.edu", UserRole.TEACHER, full_name="Dr. Rahman")


@pytest_asyncio.fixture
async def other_teacher(db_session: AsyncSession) -> Session:
    return await create_account(db_session, "colleague@university.edu", UserRole.TEACHER, full_name="Dr. Karim")


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> Session:
    return await create_account(db_session, "student@university.edu", UserRole.STUDENT, full_name="Nadia Islam")


@pytest.fixture
def jwt_manager() -> JWTManager:
    return JWTManager()


@pytest.fixture
def auth_headers(jwt_manager: JWTManager):
    """Build bearer headers for a Session."""

    def _headers(session: Session) -> Dict[str, str]:
        token, _ = jwt_manager.create_access_token(session.user_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """In-process client whose requests use the test database."""
    from portal.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_account(db_session):
    """create_account bound to the test session."""

    async def _make(email: str, role: UserRole, **kwargs) -> Session:
        return await create_account(db_session, email, role, **kwargs)

    return _make
