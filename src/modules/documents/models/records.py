"""
Vista de dominio de un documento.

Cada estado es una variante distinta, de modo que un documento firmado
siempre trae ruta, hash y fecha de firma, y uno pendiente nunca los trae.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional, Union

from modules.documents.exceptions import InvariantViolationError
from modules.documents.models.document import Document, DocumentStatus


@dataclass(frozen=True)
class DocumentRecord:
    id: str
    user_id: str
    employee_id: int
    payroll_period_start: str
    payroll_period_end: str
    pdf_original_path: str
    original_hash: str
    created_at: datetime
    superseded_by: Optional[str]
    is_active: bool
    amount: Optional[Decimal]

    status: ClassVar[DocumentStatus]


@dataclass(frozen=True)
class PendingDocument(DocumentRecord):
    status: ClassVar[DocumentStatus] = DocumentStatus.PENDING


@dataclass(frozen=True)
class SignedDocument(DocumentRecord):
    signed_hash: str
    signed_at: datetime
    pdf_signed_path: str

    status: ClassVar[DocumentStatus] = DocumentStatus.SIGNED

    def __post_init__(self):
        if not (self.signed_hash and self.signed_at and self.pdf_signed_path):
            raise InvariantViolationError(
                f"Document {self.id} is SIGNED but is missing signed path, hash or date"
            )


@dataclass(frozen=True)
class InvalidatedDocument(DocumentRecord):
    # Un documento reemplazado conserva sus datos de firma, si los tenía
    signed_hash: Optional[str] = None
    signed_at: Optional[datetime] = None
    pdf_signed_path: Optional[str] = None

    status: ClassVar[DocumentStatus] = DocumentStatus.INVALIDATED


AnyDocument = Union[PendingDocument, SignedDocument, InvalidatedDocument]


@dataclass(frozen=True)
class ProfileEmployee:
    """Perfil mínimo del usuario: el empleado de nómina al que está ligado"""
    employee_id: Optional[int]


def document_from_row(row: Document) -> AnyDocument:
    """Convierte una fila de `documents` en su variante de dominio"""
    common = dict(
        id=row.id,
        user_id=row.user_id,
        employee_id=row.employee_id,
        payroll_period_start=row.payroll_period_start,
        payroll_period_end=row.payroll_period_end,
        pdf_original_path=row.pdf_original_path or "",
        original_hash=row.original_hash,
        created_at=row.created_at,
        superseded_by=row.superseded_by,
        is_active=bool(row.is_active),
        amount=row.amount,
    )

    if row.status == DocumentStatus.SIGNED:
        return SignedDocument(
            **common,
            signed_hash=row.signed_hash,
            signed_at=row.signed_at,
            pdf_signed_path=row.pdf_signed_path,
        )

    if row.status == DocumentStatus.PENDING:
        if row.signed_hash or row.signed_at or row.pdf_signed_path:
            raise InvariantViolationError(f"Document {row.id} is PENDING but carries signing data")
        return PendingDocument(**common)

    if row.status == DocumentStatus.INVALIDATED:
        return InvalidatedDocument(
            **common,
            signed_hash=row.signed_hash,
            signed_at=row.signed_at,
            pdf_signed_path=row.pdf_signed_path,
        )

    raise InvariantViolationError(f"Document {row.id} has unknown status {row.status!r}")


@dataclass(frozen=True)
class EmployeeDocumentStats:
    """Documentos activos de un empleado, por estado"""
    pending: int
    signed: int
