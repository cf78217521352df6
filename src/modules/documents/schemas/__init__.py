from .document_schemas import (
    UploadDocumentResponse, SignDocumentRequest, PdfUrlResponse, PaginationMeta,
    DocumentResponse, PaginatedDocumentsResponse, create_pagination_meta
)

__all__ = [
    'UploadDocumentResponse', 'SignDocumentRequest', 'PdfUrlResponse', 'PaginationMeta',
    'DocumentResponse', 'PaginatedDocumentsResponse', 'create_pagination_meta'
]
