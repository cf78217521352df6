# src/modules/documents/controllers/signature_controller.py
import logging

from fastapi import APIRouter, Depends, Request

from modules.auth.controllers.auth_controller import get_current_user
from modules.documents.dependencies import get_document_service, http_error
from modules.documents.exceptions import DocumentError
from modules.documents.models.user import User
from modules.documents.schemas.document_schemas import SignDocumentRequest
from modules.documents.services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["documents"]
)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/{document_id}/sign")
def sign_document(
    document_id: str,
    payload: SignDocumentRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    """
    Firma el documento: re-autentica al usuario, estampa el bloque de firma
    y guarda el hash del PDF firmado.
    """
    try:
        service.sign_document(
            document_id,
            current_user.id,
            payload,
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent", "unknown"),
            user_email=current_user.email,
        )
    except DocumentError as e:
        logger.warning("Sign of document %s by user %s failed: %s", document_id, current_user.id, e)
        raise http_error(e)
    return {"message": "Document signed successfully", "document_id": document_id}
