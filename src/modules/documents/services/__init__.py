from .cleanup import reconcile_orphaned_uploads
from .document_service import DocumentService
from .object_store import ObjectStore, LocalObjectStore
from .pdf_renderer import DocumentRenderer, PdfSignatureRenderer, SignaturePayload

__all__ = [
    'reconcile_orphaned_uploads', 'DocumentService', 'ObjectStore', 'LocalObjectStore',
    'DocumentRenderer', 'PdfSignatureRenderer', 'SignaturePayload'
]
