from .document import Document, DocumentStatus
from .signature import Signature
from .user import User

__all__ = ['Document', 'DocumentStatus', 'Signature', 'User']
