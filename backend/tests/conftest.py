"""Shared fixtures: in-memory database, API clients and seeded templates."""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import anamnesis.models  # noqa: F401
from anamnesis.database import Base, get_db
from anamnesis.engine.errors import PersistenceError
from anamnesis.engine.transport import ApiTransport
from anamnesis.main import app
from anamnesis.models.template import FieldType, SystemField
from anamnesis.schemas.anamnesis import AnamnesisCreate
from anamnesis.schemas.template import FieldCreate, SectionCreate, TemplateCreate
from anamnesis.services.anamnesis import AnamnesisService
from anamnesis.services.template import TemplateService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


async def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def transport(anyio_backend, db_session):
    """ApiTransport bound in-process to the application."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test/api/v1",
    ) as http_client:
        yield ApiTransport(client=http_client)


class FlakyTransport:
    """Delegates to a real transport but fails the given HTTP methods."""

    def __init__(self, inner: ApiTransport, fail_methods=("PATCH",)):
        self.inner = inner
        self.fail_methods = set(fail_methods)
        self.calls = []

    async def request(self, method, path, payload=None):
        self.calls.append((method, path))
        if method in self.fail_methods:
            raise PersistenceError("Server unavailable", status_code=503)
        return await self.inner.request(method, path, payload)

    async def get(self, path):
        return await self.request("GET", path)

    async def post(self, path, payload=None):
        return await self.request("POST", path, payload)

    async def patch(self, path, payload=None):
        return await self.request("PATCH", path, payload)

    async def delete(self, path):
        return await self.request("DELETE", path)


@pytest.fixture
def template_factory(db_session):
    """Create a template from ``[(titulo, obrigatorio, [field kwargs])]``."""
    def build(nome, secoes):
        template = TemplateService.create_template(db_session, TemplateCreate(nome=nome))
        for titulo, obrigatorio, campos in secoes:
            secao = TemplateService.create_section(
                db_session, template.id, SectionCreate(titulo=titulo, obrigatorio=obrigatorio)
            )
            for campo in campos:
                TemplateService.create_field(db_session, secao.id, FieldCreate(**campo))
        return TemplateService.require_template(db_session, template.id)
    return build


@pytest.fixture
def skin_intake(template_factory):
    """'Skin Intake': Contact (Name*, Phone*) and History (Allergies)."""
    return template_factory("Skin Intake", [
        ("Contact", True, [
            {"tipo_campo": FieldType.TEXT, "label": "Name", "obrigatorio": True,
             "campo_sistema": SystemField.NOME_COMPLETO},
            {"tipo_campo": FieldType.PHONE, "label": "Phone", "obrigatorio": True,
             "campo_sistema": SystemField.TELEFONE},
        ]),
        ("History", False, [
            {"tipo_campo": FieldType.TEXTAREA, "label": "Allergies"},
        ]),
    ])


@pytest.fixture
def skin_fields(skin_intake):
    """Field ids of 'Skin Intake' keyed by label."""
    return {campo.label: campo.id for secao in skin_intake.secoes for campo in secao.campos}


@pytest.fixture
def dispatched(db_session, skin_intake):
    """An in-progress anamnesis of the 'Skin Intake' template."""
    return AnamnesisService.create_anamnesis(
        db_session, AnamnesisCreate(template_id=skin_intake.id, paciente={"origem": "test"})
    )


@pytest.fixture
def flaky_transport(transport):
    """Transport whose PATCH calls (reorders) always fail."""
    return FlakyTransport(transport)
