import itertools
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from teamhub.database import Base
import teamhub.models  # noqa: F401  registers every table
from teamhub.models.profile import Profile
from teamhub.models.stored_file import StoredFile
from teamhub.models.user import User


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'teamhub-test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    async def _make(role: str = "player", with_profile: bool = False) -> User:
        n = next(counter)
        user = User(
            username=f"user{n}",
            email=f"user{n}@example.com",
            password_hash="not-used-in-test",
            role=role,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        if with_profile:
            db.add(
                Profile(
                    user_id=user.id,
                    first_name="User",
                    last_name=str(n),
                    skills=["python"],
                    experience="beginner",
                )
            )
            await db.commit()
        return user

    return _make


@pytest.fixture
def make_file(db):
    """Register an already-uploaded file owned by ``owner`` and return its storage id."""

    async def _make(owner: User) -> str:
        storage_id = uuid.uuid4().hex
        db.add(
            StoredFile(
                storage_id=storage_id,
                storage_backend="local",
                storage_path=f"{storage_id}/resume.pdf",
                filename="resume.pdf",
                content_type="application/pdf",
                filesize=10,
                uploaded_by=owner.id,
                is_uploaded=True,
            )
        )
        await db.commit()
        return storage_id

    return _make


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Point the storage singleton at a throwaway directory."""
    from teamhub.services import storage as storage_module

    backend = storage_module.LocalFileStorage(str(tmp_path / "files"))
    monkeypatch.setattr(storage_module, "_storage", backend)
    monkeypatch.delenv("PUBLIC_BASE_URL", raising=False)
    return backend
