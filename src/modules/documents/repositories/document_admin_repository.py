import logging
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from modules.documents.exceptions import (
    AlreadySignedError, DocumentSupersededError, DuplicateDocumentError, NotFoundError, StoreError
)
from modules.documents.models.document import Document, DocumentStatus
from modules.documents.models.records import (
    AnyDocument, EmployeeDocumentStats, ProfileEmployee, document_from_row
)
from modules.documents.models.signature import Signature
from modules.documents.models.user import User

logger = logging.getLogger(__name__)


class DocumentAdminRepository:
    """
    Repositorio privilegiado: hace todas las escrituras sobre `documents` y
    `signatures` y puede leer filas de cualquier usuario. Nunca se expone
    directamente a una petición de usuario.
    """

    def __init__(self, db_session: Session):
        self.db = db_session
        self._in_atomic = False

    @contextmanager
    def atomic(self):
        """
        Agrupa varias escrituras en un solo commit. Si algo falla dentro del
        bloque, se hace rollback de todo.
        """
        if self._in_atomic:
            yield self
            return

        self._in_atomic = True
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Transaction failed: {e}") from e
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._in_atomic = False

    @contextmanager
    def _store_errors(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("DocumentAdminRepository %s failed: %s", action, e)
            raise StoreError(f"Could not {action}") from e

    def _commit(self):
        if self._in_atomic:
            self.db.flush()
        else:
            self.db.commit()

    def check_user_exists(self, user_id: str) -> Optional[ProfileEmployee]:
        with self._store_errors("read user profile"):
            employee_id = (
                self.db.query(User.employee_id)
                .filter(User.id == user_id)
                .one_or_none()
            )
        if employee_id is None:
            return None
        return ProfileEmployee(employee_id=employee_id[0])

    def check_idempotency(
        self,
        user_id: str,
        payroll_period_start: str,
        payroll_period_end: str,
        original_hash: str
    ) -> Optional[AnyDocument]:
        with self._store_errors("check idempotency"):
            row = (
                self.db.query(Document)
                .filter(
                    Document.user_id == user_id,
                    Document.payroll_period_start == payroll_period_start,
                    Document.payroll_period_end == payroll_period_end,
                    Document.original_hash == original_hash,
                    Document.is_active.is_(True),
                )
                .first()
            )
        return document_from_row(row) if row else None

    def insert_document(
        self,
        *,
        id: str,
        user_id: str,
        employee_id: int,
        payroll_period_start: str,
        payroll_period_end: str,
        original_hash: str,
        amount: Optional[Decimal] = None
    ) -> AnyDocument:
        """Inserta un documento PENDING con la ruta del PDF todavía vacía."""
        document = Document(
            id=id,
            user_id=user_id,
            employee_id=employee_id,
            payroll_period_start=payroll_period_start,
            payroll_period_end=payroll_period_end,
            pdf_original_path="",
            status=DocumentStatus.PENDING,
            original_hash=original_hash,
            amount=amount,
            is_active=True,
        )
        try:
            self.db.add(document)
            self._commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("DocumentAdminRepository insert_document: integrity error for %s: %s", id, e.orig)
            raise DuplicateDocumentError(f"Document {id} violates a uniqueness constraint") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("DocumentAdminRepository insert_document failed: %s", e)
            raise StoreError("Could not insert document") from e

        self.db.refresh(document)
        return document_from_row(document)

    def update_document_path(self, document_id: str, pdf_path: str) -> None:
        with self._store_errors("update document path"):
            updated = (
                self.db.query(Document)
                .filter(Document.id == document_id)
                .update({Document.pdf_original_path: pdf_path}, synchronize_session=False)
            )
            if updated == 0:
                raise StoreError(f"Document {document_id} vanished before its path could be set")
            self._commit()

    def supersede_old_documents(
        self,
        user_id: str,
        payroll_period_start: str,
        payroll_period_end: str,
        new_document_id: str
    ) -> int:
        """
        Marca como reemplazados los documentos activos del mismo usuario y
        periodo. `superseded_by` solo se escribe una vez.
        """
        with self._store_errors("supersede old documents"):
            updated = (
                self.db.query(Document)
                .filter(
                    Document.user_id == user_id,
                    Document.payroll_period_start == payroll_period_start,
                    Document.payroll_period_end == payroll_period_end,
                    Document.is_active.is_(True),
                    Document.superseded_by.is_(None),
                    Document.id != new_document_id,
                )
                .update(
                    {
                        Document.is_active: False,
                        Document.superseded_by: new_document_id,
                        Document.status: DocumentStatus.INVALIDATED,
                    },
                    synchronize_session=False,
                )
            )
            self._commit()

        logger.info(
            "Superseded %d document(s) for user %s in period %s to %s with %s",
            updated, user_id, payroll_period_start, payroll_period_end, new_document_id
        )
        return updated

    def insert_signature(
        self,
        *,
        document_id: str,
        name: str,
        identification_number: str,
        ip: str,
        user_agent: str,
        hash_sign: str,
        signed_at: datetime,
        identification_type: Optional[str] = None
    ) -> Signature:
        signature = Signature(
            document_id=document_id,
            name=name,
            identification_number=identification_number,
            identification_type=identification_type,
            ip=ip,
            user_agent=user_agent,
            hash_sign=hash_sign,
            signed_at=signed_at,
        )
        with self._store_errors("insert signature"):
            self.db.add(signature)
            self._commit()
        logger.info("Inserted signature for document %s", document_id)
        return signature

    def update_document_as_signed(
        self,
        document_id: str,
        signed_hash: str,
        signed_at: datetime,
        signed_pdf_path: str
    ) -> None:
        """Solo un documento PENDING puede pasar a SIGNED."""
        with self._store_errors("update document as signed"):
            updated = (
                self.db.query(Document)
                .filter(
                    Document.id == document_id,
                    Document.status == DocumentStatus.PENDING,
                )
                .update(
                    {
                        Document.status: DocumentStatus.SIGNED,
                        Document.signed_hash: signed_hash,
                        Document.signed_at: signed_at,
                        Document.pdf_signed_path: signed_pdf_path,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                self._raise_not_pending(document_id)
            self._commit()
        logger.info("Updated document %s as signed with PDF path %s", document_id, signed_pdf_path)

    def _raise_not_pending(self, document_id: str):
        current = self.db.query(Document.status).filter(Document.id == document_id).scalar()
        if current is None:
            raise NotFoundError("Document", document_id)
        if current == DocumentStatus.INVALIDATED:
            raise DocumentSupersededError(f"Document {document_id} was superseded before it could be signed")
        raise AlreadySignedError(f"Document {document_id} is no longer pending")

    def find_orphaned_uploads(self, created_before: datetime) -> List[AnyDocument]:
        """Documentos PENDING cuya subida nunca llegó a guardar la ruta del PDF."""
        with self._store_errors("find orphaned uploads"):
            rows = (
                self.db.query(Document)
                .filter(
                    Document.status == DocumentStatus.PENDING,
                    Document.is_active.is_(True),
                    Document.pdf_original_path == "",
                    Document.created_at <= created_before,
                )
                .order_by(Document.created_at)
                .all()
            )
        return [document_from_row(row) for row in rows]

    def get_employee_document_stats(self, employee_id: int) -> EmployeeDocumentStats:
        """Cuenta los documentos activos PENDING y SIGNED de un empleado"""
        with self._store_errors("get employee document stats"):
            rows = (
                self.db.query(Document.status, func.count(Document.id))
                .filter(
                    Document.employee_id == employee_id,
                    Document.is_active.is_(True),
                )
                .group_by(Document.status)
                .all()
            )
        counts = dict(rows)
        return EmployeeDocumentStats(
            pending=counts.get(DocumentStatus.PENDING, 0),
            signed=counts.get(DocumentStatus.SIGNED, 0),
        )

    def get_employee_last_documents(
        self,
        employee_id: int,
        status: DocumentStatus,
        limit: int
    ) -> List[AnyDocument]:
        """Últimos `limit` documentos activos del empleado con ese estado, más recientes primero"""
        with self._store_errors("get employee last documents"):
            rows = (
                self.db.query(Document)
                .filter(
                    Document.employee_id == employee_id,
                    Document.status == status,
                    Document.is_active.is_(True),
                )
                .order_by(Document.created_at.desc(), Document.id)
                .limit(limit)
                .all()
            )
        return [document_from_row(row) for row in rows]
