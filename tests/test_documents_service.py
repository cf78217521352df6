from datetime import datetime, timedelta, timezone

import pytest

from modules.auth.services.auth_service import AuthFailureReason, AuthResult
from modules.documents.exceptions import (
    AlreadySignedError, AuthenticationFailedError, ConflictError, DocumentSupersededError,
    InvariantViolationError, MismatchError, NotFoundError, StorageError, StoreError,
    ValidationError, WrongPasswordError
)
from modules.documents.models import Document, DocumentStatus, Signature
from modules.documents.schemas.document_schemas import SignDocumentRequest
from modules.documents.services.cleanup import reconcile_orphaned_uploads
from modules.documents.services.document_service import original_pdf_path
from modules.documents.utils.hashing import sha256_hex

from conftest import PASSWORD, create_user

START = "01-01-2025"
END = "31-01-2025"
FIXED_NOW = datetime(2025, 2, 1, 10, 0, tzinfo=timezone.utc)


def sign_request(password=PASSWORD):
    return SignDocumentRequest(
        password=password,
        full_name="Juan Pérez",
        identification_number="1234567890",
        identification_type="CC",
    )


def upload(service, pdf=b"test pdf", start=START, end=END, user_id="user-123", employee_id=456):
    return service.upload_document(pdf, user_id, employee_id, start, end)


def sign(service, document_id, password=PASSWORD, email="juan@empresa.com"):
    service.sign_document(
        document_id,
        "user-123",
        sign_request(password),
        ip="203.0.113.7",
        user_agent="pytest",
        user_email=email,
    )


def stored_files(store):
    return sorted(str(p.relative_to(store.root)) for p in store.root.rglob("*.pdf"))


# --------------------------------------------------------------------------
# Subida
# --------------------------------------------------------------------------

def test_upload_crea_documento_pendiente(service, store, session, user):
    result = upload(service)

    assert result.status == DocumentStatus.PENDING
    assert result.idempotent is False
    assert result.payroll_period_start == START
    assert result.payroll_period_end == END

    row = session.get(Document, result.document_id)
    assert row.payroll_period_start == "01-01-2025"
    assert row.payroll_period_end == "01-31-2025"
    assert row.original_hash == sha256_hex(b"test pdf")
    assert row.pdf_original_path == original_pdf_path("user-123", result.document_id)
    assert store.download(row.pdf_original_path) == b"test pdf"


def test_upload_idempotente_no_duplica(service, store, session, user):
    first = upload(service)
    second = upload(service)

    assert second.idempotent is True
    assert second.document_id == first.document_id
    assert session.query(Document).count() == 1
    assert stored_files(store) == [original_pdf_path("user-123", first.document_id)]


def test_upload_resolves_race_on_unique_index(service, session, user, monkeypatch):
    first = upload(service)

    real_check = service.admin_repository.check_idempotency
    calls = []

    def stale_check(*args):
        calls.append(args)
        # la primera lectura no ve el documento que otra petición acaba de crear
        return None if len(calls) == 1 else real_check(*args)

    monkeypatch.setattr(service.admin_repository, "check_idempotency", stale_check)

    second = upload(service)

    assert second.idempotent is True
    assert second.document_id == first.document_id
    assert len(calls) == 2
    assert session.query(Document).count() == 1


def test_upload_reemplaza_version_anterior(service, session, user):
    first = upload(service, pdf=b"version 1")
    second = upload(service, pdf=b"version 2")

    assert second.idempotent is False
    session.expire_all()
    old = session.get(Document, first.document_id)
    new = session.get(Document, second.document_id)
    assert old.status == DocumentStatus.INVALIDATED
    assert old.is_active is False
    assert old.superseded_by == second.document_id
    assert new.is_active is True
    assert new.status == DocumentStatus.PENDING


def test_upload_after_supersession_reuploads_same_content(service, session, user):
    first = upload(service, pdf=b"version 1")
    upload(service, pdf=b"version 2")

    third = upload(service, pdf=b"version 1")

    assert third.idempotent is False
    assert third.document_id != first.document_id
    assert session.query(Document).filter(Document.is_active.is_(True)).count() == 1


def test_upload_other_period_is_not_superseded(service, session, user):
    january = upload(service)
    upload(service, start="01-02-2025", end="28-02-2025")

    session.expire_all()
    assert session.get(Document, january.document_id).is_active is True


@pytest.mark.parametrize("start,end", [("29-02-2025", END), (START, "2025-01-31"), ("32-01-2025", END)])
def test_upload_rechaza_fechas_invalidas(service, session, user, start, end):
    with pytest.raises(ValidationError):
        upload(service, start=start, end=end)
    assert session.query(Document).count() == 0


@pytest.mark.parametrize("start,end", [(END, START), (START, START)])
def test_upload_rechaza_periodo_invertido(service, session, user, start, end):
    with pytest.raises(ValidationError):
        upload(service, start=start, end=end)
    assert session.query(Document).count() == 0


def test_upload_usuario_inexistente(service, session):
    with pytest.raises(NotFoundError) as exc:
        upload(service, user_id="nobody")
    assert exc.value.status_code == 404
    assert session.query(Document).count() == 0


def test_upload_empleado_no_coincide(service, store, session, user):
    with pytest.raises(MismatchError) as exc:
        upload(service, employee_id=999)
    assert exc.value.message == "Employee ID does not match user profile"
    assert session.query(Document).count() == 0
    assert stored_files(store) == []


def broken_upload(path, data, content_type="application/pdf"):
    raise StorageError("disk full")


def broken_path_update(document_id, pdf_path):
    raise StoreError("Could not update document path")


def test_reintento_completa_subida_tras_fallo_de_storage(service, store, session, user, monkeypatch):
    previous = upload(service, pdf=b"version 1")
    monkeypatch.setattr(service.object_store, "upload", broken_upload)
    with pytest.raises(StorageError):
        upload(service)
    monkeypatch.undo()

    retry = upload(service)

    assert retry.idempotent is True
    row = session.query(Document).filter(Document.is_active.is_(True)).one()
    assert row.id == retry.document_id
    assert row.pdf_original_path == original_pdf_path("user-123", row.id)
    assert store.download(row.pdf_original_path) == b"test pdf"
    assert session.get(Document, previous.document_id).superseded_by == row.id

    sign(service, retry.document_id)
    session.expire_all()
    assert session.get(Document, retry.document_id).status == DocumentStatus.SIGNED


def test_upload_deletes_object_when_path_update_fails(service, store, session, user, monkeypatch):
    monkeypatch.setattr(service.admin_repository, "update_document_path", broken_path_update)

    with pytest.raises(StoreError):
        upload(service)

    assert stored_files(store) == []


def test_reintento_completa_subida_tras_fallo_al_guardar_ruta(service, store, session, user, monkeypatch):
    monkeypatch.setattr(service.admin_repository, "update_document_path", broken_path_update)
    with pytest.raises(StoreError):
        upload(service)
    monkeypatch.undo()

    retry = upload(service)

    assert retry.idempotent is True
    assert session.query(Document).count() == 1
    row = session.get(Document, retry.document_id)
    assert row.pdf_original_path == original_pdf_path("user-123", retry.document_id)
    assert stored_files(store) == [row.pdf_original_path]


def test_reintento_fallido_deja_el_pdf_para_reconciliar(service, store, session, user, monkeypatch):
    monkeypatch.setattr(service.object_store, "upload", broken_upload)
    with pytest.raises(StorageError):
        upload(service)
    monkeypatch.undo()
    monkeypatch.setattr(service.admin_repository, "update_document_path", broken_path_update)

    with pytest.raises(StoreError):
        upload(service)
    monkeypatch.undo()

    document_id = session.query(Document).one().id
    assert store.exists(original_pdf_path("user-123", document_id))

    repaired = reconcile_orphaned_uploads(
        service.admin_repository, store, grace=timedelta(0), now=datetime.now(timezone.utc) + timedelta(minutes=1)
    )
    assert repaired == 1
    session.expire_all()
    assert session.get(Document, document_id).pdf_original_path == original_pdf_path("user-123", document_id)


def test_upload_rollback_failure_keeps_original_error(service, user, monkeypatch):
    def broken_delete(path):
        raise StorageError("delete failed")

    monkeypatch.setattr(service.admin_repository, "update_document_path", broken_path_update)
    monkeypatch.setattr(service.object_store, "delete", broken_delete)

    with pytest.raises(StoreError):
        upload(service)


# --------------------------------------------------------------------------
# Firma
# --------------------------------------------------------------------------

def test_flujo_completo_subir_firmar_url(service, store, renderer, session, user):
    service._now = lambda: FIXED_NOW
    uploaded = upload(service)

    sign(service, uploaded.document_id)

    row = session.get(Document, uploaded.document_id)
    assert row.status == DocumentStatus.SIGNED
    assert row.pdf_signed_path.startswith(f"signed/user-123/{uploaded.document_id}-")
    signed_bytes = store.download(row.pdf_signed_path)
    assert row.signed_hash == sha256_hex(signed_bytes)
    assert row.signed_hash != row.original_hash
    assert store.download(row.pdf_original_path) == b"test pdf"

    signature = session.query(Signature).filter_by(document_id=uploaded.document_id).one()
    assert signature.name == "Juan Pérez"
    assert signature.identification_number == "1234567890"
    assert signature.identification_type == "CC"
    assert signature.ip == "203.0.113.7"
    assert signature.user_agent == "pytest"
    assert signature.hash_sign == row.signed_hash

    payload = renderer.calls[0]
    assert payload.original_pdf_hash == sha256_hex(b"test pdf")
    assert payload.signing_timestamp == FIXED_NOW.isoformat()
    assert payload.ip_address == "203.0.113.7"

    url = service.get_pdf_url(uploaded.document_id, "user-123")
    assert url.pdf_type == "signed"
    assert url.expires_at == FIXED_NOW + timedelta(seconds=3600)
    token = url.url.rsplit("/", 1)[-1]
    assert store.resolve_token(token) == row.pdf_signed_path


def test_firma_con_password_incorrecta(service, store, renderer, session, user):
    uploaded = upload(service)

    with pytest.raises(WrongPasswordError) as exc:
        sign(service, uploaded.document_id, password="wrong")

    assert exc.value.message == "Incorrect password"
    assert exc.value.status_code == 401
    assert renderer.calls == []
    assert session.query(Signature).count() == 0
    assert stored_files(store) == [original_pdf_path("user-123", uploaded.document_id)]


def test_firma_sin_email_en_sesion(service, user):
    uploaded = upload(service)
    with pytest.raises(AuthenticationFailedError) as exc:
        sign(service, uploaded.document_id, email=None)
    assert not isinstance(exc.value, WrongPasswordError)


def test_firma_usuario_inactivo(service, session, user):
    uploaded = upload(service)
    user.is_active = False
    session.commit()

    with pytest.raises(AuthenticationFailedError) as exc:
        sign(service, uploaded.document_id)
    assert not isinstance(exc.value, WrongPasswordError)


@pytest.mark.parametrize(
    "outcome",
    [
        AuthResult(reason=AuthFailureReason.PROVIDER_ERROR),
        RuntimeError("identity service down"),
    ],
)
def test_firma_fallo_del_proveedor_no_es_password_incorrecta(service, user, monkeypatch, outcome):
    uploaded = upload(service)

    def verify(email, password):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(service.identity_provider, "verify_password", verify)

    with pytest.raises(AuthenticationFailedError) as exc:
        sign(service, uploaded.document_id)
    assert not isinstance(exc.value, WrongPasswordError)


def test_firma_documento_ya_firmado(service, store, renderer, session, user, monkeypatch):
    uploaded = upload(service)
    sign(service, uploaded.document_id)
    files_before = stored_files(store)

    def no_writes(*args, **kwargs):
        raise AssertionError("no writes expected")

    monkeypatch.setattr(service.object_store, "upload", no_writes)
    monkeypatch.setattr(service.admin_repository, "insert_signature", no_writes)

    with pytest.raises(AlreadySignedError) as exc:
        sign(service, uploaded.document_id)

    assert exc.value.status_code == 409
    assert len(renderer.calls) == 1
    assert stored_files(store) == files_before
    assert session.query(Signature).count() == 1


def test_firma_documento_reemplazado(service, user):
    first = upload(service, pdf=b"version 1")
    upload(service, pdf=b"version 2")

    with pytest.raises(DocumentSupersededError) as exc:
        sign(service, first.document_id)
    assert exc.value.status_code == 409


def test_firmas_concurrentes_no_borran_el_pdf_ganador(service, store, session, user, monkeypatch):
    uploaded = upload(service)
    # ambas firmas leyeron el documento cuando aún estaba PENDING
    stale = service.user_repository.get_document_by_id(uploaded.document_id, "user-123")

    sign(service, uploaded.document_id)
    monkeypatch.setattr(service.user_repository, "get_document_by_id", lambda *args: stale)

    with pytest.raises(AlreadySignedError):
        sign(service, uploaded.document_id)

    session.expire_all()
    row = session.get(Document, uploaded.document_id)
    assert row.status == DocumentStatus.SIGNED
    assert store.exists(row.pdf_signed_path)
    assert sha256_hex(store.download(row.pdf_signed_path)) == row.signed_hash
    assert session.query(Signature).count() == 1
    assert [p for p in stored_files(store) if p.startswith("signed/")] == [row.pdf_signed_path]


def test_firma_de_documento_reemplazado_tras_la_lectura(service, store, session, user, monkeypatch):
    first = upload(service, pdf=b"version 1")
    stale = service.user_repository.get_document_by_id(first.document_id, "user-123")
    upload(service, pdf=b"version 2")
    monkeypatch.setattr(service.user_repository, "get_document_by_id", lambda *args: stale)

    with pytest.raises(DocumentSupersededError):
        sign(service, first.document_id)

    assert session.query(Signature).count() == 0
    assert not [p for p in stored_files(store) if p.startswith("signed/")]


def test_firma_documento_de_otro_usuario(service, session, user):
    create_user(session, id="user-999", employee_id=789, email="ana@empresa.com")
    uploaded = upload(service)

    with pytest.raises(NotFoundError):
        service.sign_document(
            uploaded.document_id,
            "user-999",
            sign_request(),
            ip="203.0.113.7",
            user_agent="pytest",
            user_email="ana@empresa.com",
        )

    with pytest.raises(NotFoundError) as missing:
        service.get_document("does-not-exist", "user-123")
    with pytest.raises(NotFoundError) as foreign:
        service.get_document(uploaded.document_id, "user-999")
    assert type(missing.value) is type(foreign.value)
    assert missing.value.status_code == foreign.value.status_code


def test_firma_de_subida_incompleta(service, session, user, monkeypatch):
    monkeypatch.setattr(service.object_store, "upload", broken_upload)
    with pytest.raises(StorageError):
        upload(service)
    monkeypatch.undo()

    document_id = session.query(Document).one().id
    with pytest.raises(ConflictError):
        sign(service, document_id)
    with pytest.raises(ConflictError):
        service.get_pdf_url(document_id, "user-123")


def test_firma_rollback_si_falla_la_actualizacion(service, store, session, user, monkeypatch):
    uploaded = upload(service)

    def broken_update(*args, **kwargs):
        raise StoreError("Could not update document as signed")

    monkeypatch.setattr(service.admin_repository, "update_document_as_signed", broken_update)

    with pytest.raises(StoreError):
        sign(service, uploaded.document_id)

    session.expire_all()
    row = session.get(Document, uploaded.document_id)
    assert row.status == DocumentStatus.PENDING
    assert row.signed_hash is None
    assert session.query(Signature).count() == 0
    assert stored_files(store) == [original_pdf_path("user-123", uploaded.document_id)]


def test_firma_rollback_si_falla_la_firma(service, store, session, user, monkeypatch):
    uploaded = upload(service)

    def broken_insert(**kwargs):
        raise StoreError("Could not insert signature")

    monkeypatch.setattr(service.admin_repository, "insert_signature", broken_insert)

    with pytest.raises(StoreError):
        sign(service, uploaded.document_id)

    assert session.get(Document, uploaded.document_id).status == DocumentStatus.PENDING
    assert stored_files(store) == [original_pdf_path("user-123", uploaded.document_id)]


def test_firma_renderer_fallido_no_escribe(service, store, session, user, monkeypatch):
    from modules.documents.exceptions import RenderError

    uploaded = upload(service)

    def broken_render(pdf_bytes, payload):
        raise RenderError("bad pdf")

    monkeypatch.setattr(service.renderer, "append_signature_block", broken_render)

    with pytest.raises(RenderError):
        sign(service, uploaded.document_id)
    assert session.query(Signature).count() == 0
    assert stored_files(store) == [original_pdf_path("user-123", uploaded.document_id)]


# --------------------------------------------------------------------------
# Lectura
# --------------------------------------------------------------------------

def test_pdf_url_de_documento_pendiente_apunta_al_original(service, store, user):
    uploaded = upload(service)

    url = service.get_pdf_url(uploaded.document_id, "user-123", ttl_seconds=60)

    assert url.pdf_type == "original"
    assert url.document_id == uploaded.document_id
    token = url.url.rsplit("/", 1)[-1]
    assert store.resolve_token(token) == original_pdf_path("user-123", uploaded.document_id)


def test_pdf_url_de_documento_reemplazado_apunta_al_original(service, user):
    first = upload(service, pdf=b"version 1")
    upload(service, pdf=b"version 2")

    assert service.get_pdf_url(first.document_id, "user-123").pdf_type == "original"


@pytest.mark.parametrize("ttl", [0, -10])
def test_pdf_url_ttl_invalido(service, user, ttl):
    uploaded = upload(service)
    with pytest.raises(ValidationError):
        service.get_pdf_url(uploaded.document_id, "user-123", ttl_seconds=ttl)


def test_pdf_url_documento_firmado_corrupto(service, session, user):
    uploaded = upload(service)
    row = session.get(Document, uploaded.document_id)
    row.status = DocumentStatus.SIGNED
    session.commit()

    with pytest.raises(InvariantViolationError) as exc:
        service.get_pdf_url(uploaded.document_id, "user-123")
    assert exc.value.status_code == 500


def test_listado_paginado_por_estado(service, session, user):
    ids = []
    for month in range(1, 4):
        result = upload(service, start=f"01-0{month}-2025", end=f"28-0{month}-2025")
        ids.append(result.document_id)
    sign(service, ids[0])

    page = service.list_by_user_and_status("user-123", page=1, limit=2)
    assert page.pagination.total == 3
    assert page.pagination.total_pages == 2
    assert page.pagination.has_next_page is True
    assert len(page.data) == 2
    assert page.data[0].payroll_period_start.endswith("-2025")

    signed = service.list_by_user_and_status("user-123", status=DocumentStatus.SIGNED)
    assert [d.id for d in signed.data] == [ids[0]]

    empty = service.list_by_user_and_status("user-123", page=5, limit=2)
    assert empty.data == []
    assert empty.pagination.has_prev_page is True


@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0)])
def test_listado_parametros_invalidos(service, user, page, limit):
    with pytest.raises(ValidationError):
        service.list_by_user_and_status("user-123", page=page, limit=limit)
