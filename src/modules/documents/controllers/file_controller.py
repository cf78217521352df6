from fastapi import APIRouter, Depends, HTTPException, Response

from modules.documents.dependencies import get_object_store
from modules.documents.exceptions import StorageError
from modules.documents.services.object_store import LocalObjectStore

router = APIRouter(tags=["files"])


@router.get("/{token}")
def download_signed_file(token: str, store: LocalObjectStore = Depends(get_object_store)):
    """Destino de las URLs firmadas: entrega el PDF si el token es válido y no ha expirado."""
    path = store.resolve_token(token)
    if path is None:
        raise HTTPException(403, "Invalid or expired link")
    try:
        data = store.download(path)
    except StorageError:
        raise HTTPException(404, "File not found")
    return Response(content=data, media_type="application/pdf")
