"""
Errores del flujo de documentos.

Cada error lleva el status HTTP al que lo traduce la capa de controladores.
"""
from typing import Optional


class DocumentError(Exception):
    """Base exception for the document workflow"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DocumentError):
    """Malformed or invalid input"""
    status_code = 400


class NotFoundError(DocumentError):
    """Missing resource, or one the caller is not allowed to see"""
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found with id: {resource_id}" if resource_id else f"{resource} not found"
        super().__init__(message)
        self.resource = resource


class MismatchError(DocumentError):
    status_code = 400


class ConflictError(DocumentError):
    status_code = 409


class AlreadySignedError(ConflictError):
    def __init__(self, message: str = "Document is already signed"):
        super().__init__(message)


class DocumentSupersededError(ConflictError):
    def __init__(self, message: str = "Document has been superseded by a newer version"):
        super().__init__(message)


class AuthenticationFailedError(DocumentError):
    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class WrongPasswordError(AuthenticationFailedError):
    def __init__(self, message: str = "Incorrect password"):
        super().__init__(message)


class InvariantViolationError(DocumentError):
    """Data-integrity fault, should never happen in a healthy system"""
    status_code = 500


class StoreError(DocumentError):
    """Failure talking to the relational store"""
    status_code = 500


class DuplicateDocumentError(StoreError):
    """The idempotency unique index rejected an insert"""
    status_code = 409


class StorageError(DocumentError):
    """Failure talking to the object store"""
    status_code = 500


class RenderError(DocumentError):
    status_code = 500
