from .document_admin_repository import DocumentAdminRepository
from .document_user_repository import DocumentUserRepository

__all__ = ['DocumentAdminRepository', 'DocumentUserRepository']
