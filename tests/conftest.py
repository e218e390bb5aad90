import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid
from typing import AsyncGenerator, Dict, List, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from masjidku.auth.security import create_access_token, hash_password
from masjidku.core.exceptions import UpstreamError
from masjidku.core.models import Masjid, MasjidAdmin, User
from masjidku.db.session import Base, get_db
from masjidku.integrations.midtrans import SnapTransaction, get_midtrans_client
from masjidku.integrations.storage import get_storage_client
from masjidku.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeMidtrans:
    """Records Snap requests instead of calling the gateway."""

    def __init__(self) -> None:
        self.calls: List[Dict] = []
        self.fail = False

    async def create_snap_transaction(
        self,
        order_id: str,
        gross_amount: int,
        customer_name: str,
        customer_email: Optional[str] = None,
    ) -> SnapTransaction:
        if self.fail:
            raise UpstreamError("Failed to create payment transaction")
        self.calls.append({"order_id": order_id, "gross_amount": gross_amount, "customer_name": customer_name})
        return SnapTransaction(token=f"snap-{order_id}", redirect_url=f"https://pay.test/{order_id}")


class FakeStorage:
    def __init__(self) -> None:
        self.uploads: List[Tuple[str, bytes, Optional[str]]] = []
        self.deleted: List[str] = []
        self.fail = False
        # Fail once this many uploads have succeeded
        self.fail_after: Optional[int] = None

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        if self.fail or (self.fail_after is not None and len(self.uploads) >= self.fail_after):
            raise UpstreamError("Failed to upload file")
        self.uploads.append((path, content, content_type))
        return f"https://storage.test/{path}"

    async def delete(self, paths) -> None:
        self.deleted.extend(paths)


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest.fixture()
def midtrans() -> FakeMidtrans:
    return FakeMidtrans()


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
async def client(
    session_factory: async_sessionmaker, midtrans: FakeMidtrans, storage: FakeStorage
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, one DB session per request."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_midtrans_client] = lambda: midtrans
    app.dependency_overrides[get_storage_client] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(session_factory: async_sessionmaker):
    """Insert a user and return (user_id, auth headers)."""

    async def _make(
        user_name: Optional[str] = None,
        role: str = "user",
        full_name: Optional[str] = None,
        password: str = "Secret1234",
    ) -> Tuple[uuid.UUID, Dict[str, str]]:
        user_name = user_name or f"user_{uuid.uuid4().hex[:8]}"
        async with session_factory() as session:
            user = User(
                user_name=user_name,
                full_name=full_name or user_name.title(),
                email=f"{user_name}@example.com",
                password_hash=hash_password(password),
                role=role,
                is_active=True,
            )
            session.add(user)
            await session.commit()
            user_id = user.id
        token = create_access_token(user_id, role)
        return user_id, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
async def owner(make_user) -> Tuple[uuid.UUID, Dict[str, str]]:
    return await make_user("owner", role="owner")


@pytest.fixture()
def make_masjid(session_factory: async_sessionmaker):
    """Insert a masjid, optionally with a DKM admin; returns the masjid id."""

    async def _make(
        name: str = "Masjid Al Ikhlas",
        slug: Optional[str] = None,
        dkm_user_id: Optional[uuid.UUID] = None,
        is_verified: bool = False,
    ) -> uuid.UUID:
        async with session_factory() as session:
            masjid = Masjid(
                name=name,
                slug=slug or f"masjid-{uuid.uuid4().hex[:8]}",
                is_active=True,
                is_verified=is_verified,
                verification_status="approved" if is_verified else "pending",
            )
            session.add(masjid)
            await session.flush()
            if dkm_user_id is not None:
                session.add(MasjidAdmin(masjid_id=masjid.id, user_id=dkm_user_id, is_active=True))
            await session.commit()
            return masjid.id

    return _make


@pytest.fixture()
async def tenant(make_user, make_masjid) -> Dict:
    """A masjid with one DKM admin."""
    dkm_id, dkm_headers = await make_user("dkm_one", role="dkm")
    masjid_id = await make_masjid("Masjid Al Ikhlas", slug="al-ikhlas", dkm_user_id=dkm_id)
    return {"masjid_id": masjid_id, "slug": "al-ikhlas", "dkm_id": dkm_id, "headers": dkm_headers}


@pytest.fixture()
async def other_tenant(make_user, make_masjid) -> Dict:
    dkm_id, dkm_headers = await make_user("dkm_two", role="dkm")
    masjid_id = await make_masjid("Masjid An Nur", slug="an-nur", dkm_user_id=dkm_id)
    return {"masjid_id": masjid_id, "slug": "an-nur", "dkm_id": dkm_id, "headers": dkm_headers}


@pytest.fixture()
def make_structure(client: AsyncClient, make_user):
    """Create class, section, subject, class-subject and one teacher in a masjid through the API."""

    async def _make(ctx: Dict, class_name: str = "Kelas 1", section_name: str = "A", subject_name: str = "Tahfidz") -> Dict:
        base = f"/api/a/{ctx['masjid_id']}"
        headers = ctx["headers"]
        class_id = (await client.post(f"{base}/classes", json={"name": class_name}, headers=headers)).json()["data"]["id"]
        section = await client.post(
            f"{base}/class-sections", json={"class_id": class_id, "name": section_name}, headers=headers
        )
        subject = await client.post(f"{base}/subjects", json={"name": subject_name}, headers=headers)
        class_subject = await client.post(
            f"{base}/class-subjects",
            json={"class_id": class_id, "subject_id": subject.json()["data"]["id"]},
            headers=headers,
        )
        user_id, teacher_headers = await make_user(full_name="Ustadz Hasan")
        teacher = await client.post(
            f"{base}/masjid-teachers", json={"user_id": str(user_id), "title": "Ustadz"}, headers=headers
        )
        return {
            "class_id": class_id,
            "section_id": section.json()["data"]["id"],
            "subject_id": subject.json()["data"]["id"],
            "class_subject_id": class_subject.json()["data"]["id"],
            "teacher_id": teacher.json()["data"]["id"],
            "teacher_user_id": user_id,
            "teacher_headers": teacher_headers,
        }

    return _make
