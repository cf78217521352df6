import os

os.environ.setdefault("PAYROLL_DATABASE_URL", "sqlite://")
os.environ.setdefault("PAYROLL_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PAYROLL_INTERNAL_API_KEY", "internal-test-key")

import io

import pytest
from reportlab.pdfgen import canvas
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from modules.auth.services.auth_service import AuthService, IdentityProvider
from modules.documents.models import User
from modules.documents.repositories import DocumentAdminRepository, DocumentUserRepository
from modules.documents.services.document_service import DocumentService
from modules.documents.services.object_store import LocalObjectStore
from modules.documents.services.pdf_renderer import DocumentRenderer
from modules.employees.models import Employee

TEST_SECRET = "test-secret-key"
PASSWORD = "juan123"
PASSWORD_HASH = AuthService.get_password_hash(PASSWORD)


class StubRenderer(DocumentRenderer):
    """Renderer de prueba: no necesita un PDF real"""

    def __init__(self):
        self.calls = []

    def append_signature_block(self, pdf_bytes, payload):
        self.calls.append(payload)
        return pdf_bytes + b"\n%% signed by " + payload.full_name.encode()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(str(tmp_path / "storage"), "http://testserver", TEST_SECRET)


@pytest.fixture
def renderer():
    return StubRenderer()


@pytest.fixture
def service(session, store, renderer):
    return DocumentService(
        admin_repository=DocumentAdminRepository(session),
        user_repository=DocumentUserRepository(session),
        object_store=store,
        renderer=renderer,
        identity_provider=IdentityProvider(session),
    )


def create_user(session, id="user-123", employee_id=456, email="juan@empresa.com", is_active=True):
    user = User(
        id=id,
        name="Juan Pérez",
        email=email,
        password_hash=PASSWORD_HASH,
        employee_id=employee_id,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    return user


def create_employee(session, id=456, name="Juan Pérez", email="juan@empresa.com", **fields):
    employee = Employee(id=id, name=name, email=email, **fields)
    session.add(employee)
    session.commit()
    return employee


@pytest.fixture
def user(session):
    return create_user(session)


def make_pdf_bytes(text="Cuenta de cobro de prueba", pages=1):
    buf = io.BytesIO()
    c = canvas.Canvas(buf)
    for i in range(pages):
        c.drawString(50, 750, f"{text} - página {i + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture
def example_pdf():
    return make_pdf_bytes()
