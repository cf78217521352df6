import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modules.documents.exceptions import StoreError
from modules.documents.models.document import Document, DocumentStatus
from modules.documents.models.records import AnyDocument, document_from_row

logger = logging.getLogger(__name__)


class DocumentUserRepository:
    """
    User-scoped, read-only repository.

    Every query is filtered by the owner's id, so a document belonging to
    someone else looks exactly like one that does not exist.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def _owned_by(self, user_id: str):
        return self.db.query(Document).filter(Document.user_id == user_id)

    def get_document_by_id(self, document_id: str, user_id: str) -> Optional[AnyDocument]:
        try:
            row = self._owned_by(user_id).filter(Document.id == document_id).one_or_none()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to get document %s for user %s: %s", document_id, user_id, e)
            raise StoreError("Could not read document") from e
        return document_from_row(row) if row else None

    def list_documents_by_user(
        self,
        user_id: str,
        status: Optional[DocumentStatus] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[AnyDocument], int]:
        """Returns one page of the user's documents, newest first, and the total count."""
        query = self._owned_by(user_id)
        if status is not None:
            query = query.filter(Document.status == status)

        try:
            total = query.count()
            rows = (
                query.order_by(Document.created_at.desc(), Document.id)
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to list documents for user %s: %s", user_id, e)
            raise StoreError("Could not list documents") from e

        return [document_from_row(row) for row in rows], total
