import math
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from modules.documents.models.document import DocumentStatus
from modules.documents.models.records import AnyDocument
from modules.documents.utils.dates import to_external


class UploadDocumentResponse(BaseModel):
    document_id: str
    status: DocumentStatus
    payroll_period_start: str
    payroll_period_end: str
    idempotent: bool = False


class SignDocumentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(min_length=1)
    full_name: str = Field(alias="fullName", min_length=1)
    identification_number: str = Field(alias="identificationNumber", min_length=1)
    identification_type: Optional[str] = Field(default=None, alias="identificationType")


class PdfUrlResponse(BaseModel):
    document_id: str
    url: str
    expires_at: datetime
    pdf_type: Literal["original", "signed"]


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


def create_pagination_meta(total: int, page: int, limit: int) -> PaginationMeta:
    total_pages = math.ceil(total / limit)
    return PaginationMeta(
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


class DocumentResponse(BaseModel):
    id: str
    user_id: str
    employee_id: int
    payroll_period_start: str
    payroll_period_end: str
    status: DocumentStatus
    original_hash: str
    signed_hash: Optional[str] = None
    amount: Optional[Decimal] = None
    created_at: datetime
    signed_at: Optional[datetime] = None
    superseded_by: Optional[str] = None
    is_active: bool

    @classmethod
    def from_record(cls, document: AnyDocument) -> "DocumentResponse":
        return cls(
            id=document.id,
            user_id=document.user_id,
            employee_id=document.employee_id,
            payroll_period_start=to_external(document.payroll_period_start),
            payroll_period_end=to_external(document.payroll_period_end),
            status=document.status,
            original_hash=document.original_hash,
            signed_hash=getattr(document, "signed_hash", None),
            amount=document.amount,
            created_at=document.created_at,
            signed_at=getattr(document, "signed_at", None),
            superseded_by=document.superseded_by,
            is_active=document.is_active,
        )


class PaginatedDocumentsResponse(BaseModel):
    data: List[DocumentResponse]
    pagination: PaginationMeta
