from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
from modules.auth.services.auth_service import IdentityProvider
from modules.documents.exceptions import DocumentError
from modules.documents.repositories.document_admin_repository import DocumentAdminRepository
from modules.documents.repositories.document_user_repository import DocumentUserRepository
from modules.documents.services.document_service import DocumentService
from modules.documents.services.object_store import ObjectStore
from modules.documents.services.pdf_renderer import DocumentRenderer, PdfSignatureRenderer


def get_object_store(request: Request) -> ObjectStore:
    # construido una sola vez en el lifespan de la app
    return request.app.state.object_store


def get_renderer() -> DocumentRenderer:
    return PdfSignatureRenderer()


def get_document_service(
    db: Session = Depends(get_db),
    object_store: ObjectStore = Depends(get_object_store),
    renderer: DocumentRenderer = Depends(get_renderer)
) -> DocumentService:
    return DocumentService(
        admin_repository=DocumentAdminRepository(db),
        user_repository=DocumentUserRepository(db),
        object_store=object_store,
        renderer=renderer,
        identity_provider=IdentityProvider(db),
    )


def http_error(e: DocumentError) -> HTTPException:
    if e.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return HTTPException(e.status_code, "Internal server error")
    return HTTPException(e.status_code, e.message)
