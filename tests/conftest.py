"""
Shared fixtures.

Each test gets a fresh in-memory MongoDB (mongomock-motor) with Beanie
initialized on it, and an httpx client talking to the ASGI app directly.
The app lifespan is not run, so no real MongoDB is needed.
"""

import io
import os
import tempfile

# Settings are cached on first use; configure them before importing the app.
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="study-vault-uploads-")
os.environ["AVATAR_DIR"] = tempfile.mkdtemp(prefix="study-vault-avatars-")
os.environ["JWT_SECRET"] = "test-signing-key-0123456789abcdef0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MONGODB_DATABASE"] = "study_vault_test"

import pytest
import pytest_asyncio
from beanie import init_beanie
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from PyPDF2 import PdfWriter

from study_vault.config import get_settings
from study_vault.database import DOCUMENT_MODELS
from study_vault.main import app
from study_vault.models.pdf import FileMetadata, Genre, Pdf, PdfStatus
from study_vault.models.user import User, UserRole
from study_vault.services.pdf_service import save_upload
from study_vault.services.security import create_access_token, hash_password

PASSWORD = "correct-horse"


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    await init_beanie(database=client[get_settings().mongodb_database], document_models=DOCUMENT_MODELS)
    # mongomock's create_indexes (used by Beanie) drops partialFilterExpression;
    # rebuild the declared partial unique email index via create_index, which keeps it.
    collection = User.get_motor_collection()
    for index in User.Settings.indexes:
        spec = dict(index.document)
        if "partialFilterExpression" in spec:
            await collection.drop_index(spec["name"])
            keys = list(spec.pop("key").items())
            await collection.create_index(keys, **spec)
    yield client


@pytest_asyncio.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


def pdf_bytes(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def make_user(db):
    async def _make_user(
        email: str = "reader@example.com",
        full_name: str = "Rea Der",
        role: UserRole = UserRole.USER,
        **fields,
    ) -> User:
        user = User(
            full_name=full_name,
            email=email,
            password=hash_password(PASSWORD),
            role=role,
            **fields,
        )
        await user.insert()
        return user

    return _make_user


@pytest.fixture
def make_pdf(db):
    async def _make_pdf(owner: User, title: str = "Linear Algebra Notes", approved: bool = True, **fields) -> Pdf:
        path = save_upload(pdf_bytes(), f"{title}.pdf")
        defaults = dict(
            title=title,
            genre=Genre.MATHEMATICS,
            file_name=path.name,
            file_path=str(path),
            file_size=path.stat().st_size,
            metadata=FileMetadata(original_name=f"{title}.pdf"),
            uploaded_by=owner.id,
            uploader_name=owner.full_name,
            is_approved=approved,
            status=PdfStatus.ACTIVE if approved else PdfStatus.PENDING,
        )
        defaults.update(fields)
        pdf = Pdf(**defaults)
        await pdf.insert()
        return pdf

    return _make_pdf
