import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional

from modules.auth.services.auth_service import AuthFailureReason, IdentityProvider
from modules.documents.exceptions import (
    AlreadySignedError, AuthenticationFailedError, ConflictError, DocumentSupersededError,
    DuplicateDocumentError, MismatchError, NotFoundError, ValidationError, WrongPasswordError
)
from modules.documents.models.document import DocumentStatus
from modules.documents.models.records import AnyDocument, InvalidatedDocument, PendingDocument, SignedDocument
from modules.documents.repositories.document_admin_repository import DocumentAdminRepository
from modules.documents.repositories.document_user_repository import DocumentUserRepository
from modules.documents.schemas.document_schemas import (
    DocumentResponse, PaginatedDocumentsResponse, PdfUrlResponse, SignDocumentRequest,
    UploadDocumentResponse, create_pagination_meta
)
from modules.documents.services.object_store import ObjectStore
from modules.documents.services.pdf_renderer import DocumentRenderer, SignaturePayload
from modules.documents.utils.dates import (
    InvalidCalendarDateError, MalformedDateError, to_comparable, to_internal
)
from modules.documents.utils.hashing import sha256_hex

logger = logging.getLogger(__name__)


def original_pdf_path(user_id: str, document_id: str) -> str:
    return f"original/{user_id}/{document_id}.pdf"


def signed_pdf_path(user_id: str, document_id: str, attempt_id: str) -> str:
    # una clave por intento: un intento fallido solo puede borrar su propio PDF
    return f"signed/{user_id}/{document_id}-{attempt_id}.pdf"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentService:
    """
    Flujo de documentos de nómina: subida idempotente, reemplazo de versiones
    anteriores, firma y URLs temporales del PDF.

    No guarda estado propio; cada paso vuelve a leer del repositorio.
    """

    def __init__(
        self,
        admin_repository: DocumentAdminRepository,
        user_repository: DocumentUserRepository,
        object_store: ObjectStore,
        renderer: DocumentRenderer,
        identity_provider: IdentityProvider,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], datetime] = _utcnow
    ):
        self.admin_repository = admin_repository
        self.user_repository = user_repository
        self.object_store = object_store
        self.renderer = renderer
        self.identity_provider = identity_provider
        self._new_id = id_factory
        self._now = clock

    # ------------------------------------------------------------------
    # Subida
    # ------------------------------------------------------------------

    def upload_document(
        self,
        pdf: bytes,
        user_id: str,
        employee_id: int,
        payroll_period_start: str,
        payroll_period_end: str,
        amount: Optional[Decimal] = None
    ) -> UploadDocumentResponse:
        """
        Sube la cuenta de cobro de un periodo:
        - Valida fechas, usuario y empleado
        - Si el mismo PDF ya existe para el periodo, retorna ese documento
        - Si no, crea el registro, reemplaza las versiones previas del periodo
          y guarda el PDF
        """
        # 1) Fechas al formato interno
        try:
            period_start = to_internal(payroll_period_start)
            period_end = to_internal(payroll_period_end)
        except (MalformedDateError, InvalidCalendarDateError) as e:
            raise ValidationError(str(e)) from e

        # 2) El usuario debe existir
        profile = self.admin_repository.check_user_exists(user_id)
        if profile is None:
            raise NotFoundError("User", user_id)

        # 3) No se puede subir en nombre de otro empleado
        if profile.employee_id != employee_id:
            raise MismatchError("Employee ID does not match user profile")

        # 4) El periodo debe abarcar al menos un día
        if to_comparable(payroll_period_start) >= to_comparable(payroll_period_end):
            raise ValidationError("payroll_period_start must be before payroll_period_end")

        # 5) Hash del contenido
        original_hash = sha256_hex(pdf)

        # 6) Idempotencia
        existing = self.admin_repository.check_idempotency(user_id, period_start, period_end, original_hash)
        if existing:
            logger.info("Idempotent upload for user %s hit document %s", user_id, existing.id)
            return self._idempotent_hit(
                existing, pdf, period_start, period_end, payroll_period_start, payroll_period_end
            )

        # 7) Documento nuevo
        document_id = self._new_id()
        try:
            self.admin_repository.insert_document(
                id=document_id,
                user_id=user_id,
                employee_id=employee_id,
                payroll_period_start=period_start,
                payroll_period_end=period_end,
                original_hash=original_hash,
                amount=amount,
            )
        except DuplicateDocumentError:
            # Otra petición idéntica ganó la carrera entre la lectura y el insert
            existing = self.admin_repository.check_idempotency(user_id, period_start, period_end, original_hash)
            if existing is None:
                raise
            logger.info("Concurrent upload for user %s resolved to document %s", user_id, existing.id)
            return self._idempotent_hit(
                existing, pdf, period_start, period_end, payroll_period_start, payroll_period_end
            )

        self._store_original(pdf, user_id, document_id, period_start, period_end, discard_on_failure=True)

        logger.info("Uploaded document %s for user %s (%s to %s)", document_id, user_id, period_start, period_end)
        return UploadDocumentResponse(
            document_id=document_id,
            status=DocumentStatus.PENDING,
            payroll_period_start=payroll_period_start,
            payroll_period_end=payroll_period_end,
        )

    def _store_original(
        self,
        pdf: bytes,
        user_id: str,
        document_id: str,
        period_start: str,
        period_end: str,
        discard_on_failure: bool
    ) -> None:
        """Reemplaza las versiones previas del periodo, guarda el PDF y registra su ruta."""
        self.admin_repository.supersede_old_documents(user_id, period_start, period_end, document_id)

        pdf_path = original_pdf_path(user_id, document_id)
        self.object_store.upload(pdf_path, pdf)
        try:
            self.admin_repository.update_document_path(document_id, pdf_path)
        except Exception:
            if discard_on_failure:
                self._discard_object(pdf_path)
            raise

    def _idempotent_hit(
        self,
        existing: AnyDocument,
        pdf: bytes,
        period_start: str,
        period_end: str,
        external_start: str,
        external_end: str
    ) -> UploadDocumentResponse:
        """
        Mismo contenido ya registrado. Si la subida anterior quedó a medias
        (sin ruta del PDF), se completa con estos bytes, que tienen el mismo hash.
        """
        if isinstance(existing, PendingDocument) and not existing.pdf_original_path:
            logger.warning("Resuming incomplete upload of document %s", existing.id)
            # La clave es la misma para todos los reintentos: si el registro de
            # la ruta falla, el PDF se deja para el job de reconciliación
            self._store_original(
                pdf, existing.user_id, existing.id, period_start, period_end, discard_on_failure=False
            )
        return self._upload_response(existing, external_start, external_end, idempotent=True)

    @staticmethod
    def _upload_response(document: AnyDocument, start: str, end: str, idempotent: bool) -> UploadDocumentResponse:
        return UploadDocumentResponse(
            document_id=document.id,
            status=document.status,
            payroll_period_start=start,
            payroll_period_end=end,
            idempotent=idempotent,
        )

    # ------------------------------------------------------------------
    # Firma
    # ------------------------------------------------------------------

    def sign_document(
        self,
        document_id: str,
        user_id: str,
        request: SignDocumentRequest,
        ip: str,
        user_agent: str,
        user_email: Optional[str]
    ) -> None:
        """
        Firma un documento del usuario. La firma y el cambio a SIGNED se
        guardan juntos; si fallan, el PDF firmado se elimina del storage.
        """
        document = self._get_owned(document_id, user_id)

        if isinstance(document, SignedDocument):
            raise AlreadySignedError()
        if isinstance(document, InvalidatedDocument):
            raise DocumentSupersededError()
        self._require_original_path(document)

        # La sesión no prueba que quien firma conoce la contraseña ahora mismo
        self._reauthenticate(user_email, request.password)

        original_pdf = self.object_store.download(document.pdf_original_path)
        original_hash = sha256_hex(original_pdf)

        signed_at = self._now()
        payload = SignaturePayload(
            full_name=request.full_name,
            identification_number=request.identification_number,
            signing_timestamp=signed_at.isoformat(),
            ip_address=ip,
            original_pdf_hash=original_hash,
        )
        signed_pdf = self.renderer.append_signature_block(original_pdf, payload)
        signed_hash = sha256_hex(signed_pdf)

        signed_path = signed_pdf_path(user_id, document_id, self._new_id())
        self.object_store.upload(signed_path, signed_pdf)

        try:
            with self.admin_repository.atomic():
                self.admin_repository.insert_signature(
                    document_id=document_id,
                    name=request.full_name,
                    identification_number=request.identification_number,
                    identification_type=request.identification_type,
                    ip=ip,
                    user_agent=user_agent,
                    hash_sign=signed_hash,
                    signed_at=signed_at,
                )
                self.admin_repository.update_document_as_signed(document_id, signed_hash, signed_at, signed_path)
        except Exception:
            self._discard_object(signed_path)
            raise

        logger.info("Document %s signed by user %s from %s", document_id, user_id, ip)

    def _reauthenticate(self, user_email: Optional[str], password: str) -> None:
        if not user_email:
            raise AuthenticationFailedError()
        try:
            result = self.identity_provider.verify_password(user_email, password)
        except Exception as e:
            logger.error("Identity provider error while re-authenticating %s: %s", user_email, e)
            raise AuthenticationFailedError() from e

        if result.ok:
            return
        if result.reason == AuthFailureReason.INVALID_CREDENTIALS:
            raise WrongPasswordError()
        logger.warning("Re-authentication for %s failed: %s", user_email, result.reason)
        raise AuthenticationFailedError()

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    def get_pdf_url(self, document_id: str, user_id: str, ttl_seconds: int = 3600) -> PdfUrlResponse:
        """URL temporal del PDF firmado si existe, o del original si no."""
        if ttl_seconds <= 0:
            raise ValidationError("ttl_seconds must be a positive integer")

        document = self._get_owned(document_id, user_id)
        if isinstance(document, SignedDocument):
            path, pdf_type = document.pdf_signed_path, "signed"
        else:
            self._require_original_path(document)
            path, pdf_type = document.pdf_original_path, "original"

        expires_at = self._now() + timedelta(seconds=ttl_seconds)
        url = self.object_store.signed_url(path, ttl_seconds)
        return PdfUrlResponse(document_id=document.id, url=url, expires_at=expires_at, pdf_type=pdf_type)

    def get_document(self, document_id: str, user_id: str) -> DocumentResponse:
        return DocumentResponse.from_record(self._get_owned(document_id, user_id))

    def list_by_user_and_status(
        self,
        user_id: str,
        status: Optional[DocumentStatus] = None,
        page: int = 1,
        limit: int = 10
    ) -> PaginatedDocumentsResponse:
        if page < 1:
            raise ValidationError("Page must be a positive integer")
        if limit < 1:
            raise ValidationError("Limit must be a positive integer")

        documents, total = self.user_repository.list_documents_by_user(user_id, status, page, limit)
        return PaginatedDocumentsResponse(
            data=[DocumentResponse.from_record(doc) for doc in documents],
            pagination=create_pagination_meta(total, page, limit),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_owned(self, document_id: str, user_id: str) -> AnyDocument:
        document = self.user_repository.get_document_by_id(document_id, user_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    @staticmethod
    def _require_original_path(document: AnyDocument) -> None:
        if not document.pdf_original_path:
            raise ConflictError(f"Upload of document {document.id} has not completed")

    def _discard_object(self, path: str) -> None:
        """Rollback de storage: si falla se registra, nunca reemplaza el error original."""
        try:
            self.object_store.delete(path)
            logger.info("Rolled back stored object %s", path)
        except Exception:
            logger.exception("Rollback failed, could not delete stored object %s", path)
