import io
import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Depends, Query, Response, status
from PyPDF2 import PdfReader

from config import Settings, get_settings
from modules.auth.controllers.auth_controller import get_current_user
from modules.auth.dependencies import verify_internal_api_key
from modules.documents.dependencies import get_document_service, http_error
from modules.documents.exceptions import DocumentError
from modules.documents.models.document import DocumentStatus
from modules.documents.models.user import User
from modules.documents.schemas.document_schemas import (
    DocumentResponse, PaginatedDocumentsResponse, PdfUrlResponse, UploadDocumentResponse
)
from modules.documents.services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["documents"]
)

MAX_LIMIT = 50


def _read_pdf(pdf: UploadFile, max_file_size: int) -> bytes:
    """Valida el archivo subido y retorna su contenido"""
    if pdf.content_type != "application/pdf":
        raise HTTPException(400, "Only PDF files are allowed")
    if not (pdf.filename or "").lower().endswith(".pdf"):
        raise HTTPException(400, "File extension must be .pdf")

    contents = pdf.file.read(max_file_size + 1)
    if not contents:
        raise HTTPException(400, "PDF file is empty")
    if len(contents) > max_file_size:
        raise HTTPException(400, f"Maximum file size is {max_file_size // (1024 * 1024)} MB")

    try:
        reader = PdfReader(io.BytesIO(contents))
        _ = reader.pages[0]
    except Exception:
        raise HTTPException(400, "Invalid or corrupted PDF")
    return contents


@router.post("", response_model=UploadDocumentResponse, status_code=status.HTTP_201_CREATED)
def upload_document(
    response: Response,
    user_id: str = Form(...),
    employee_id: int = Form(...),
    payroll_period_start: str = Form(..., description="DD-MM-YYYY"),
    payroll_period_end: str = Form(..., description="DD-MM-YYYY"),
    amount: Optional[Decimal] = Form(None),
    pdf: UploadFile = File(...),
    _: bool = Depends(verify_internal_api_key),
    service: DocumentService = Depends(get_document_service),
    settings: Settings = Depends(get_settings)
):
    contents = _read_pdf(pdf, settings.max_upload_size)
    try:
        result = service.upload_document(
            contents, user_id, employee_id, payroll_period_start, payroll_period_end, amount
        )
    except DocumentError as e:
        logger.warning("Upload for user %s failed: %s", user_id, e)
        raise http_error(e)

    if result.idempotent:
        response.status_code = status.HTTP_200_OK
    return result


@router.get("", response_model=PaginatedDocumentsResponse)
def list_documents(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    try:
        return service.list_by_user_and_status(current_user.id, status_filter, page, limit)
    except DocumentError as e:
        raise http_error(e)


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: str,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    try:
        return service.get_document(document_id, current_user.id)
    except DocumentError as e:
        raise http_error(e)


@router.get("/{document_id}/pdf-url", response_model=PdfUrlResponse)
def get_document_pdf_url(
    document_id: str,
    ttl: Optional[int] = Query(None, ge=1, le=24 * 3600),
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    settings: Settings = Depends(get_settings)
):
    try:
        return service.get_pdf_url(document_id, current_user.id, ttl or settings.pdf_url_ttl_seconds)
    except DocumentError as e:
        raise http_error(e)
