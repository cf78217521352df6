import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from modules.documents.exceptions import DocumentError
from modules.documents.repositories.document_admin_repository import DocumentAdminRepository
from modules.documents.services.document_service import original_pdf_path
from modules.documents.services.object_store import ObjectStore

logger = logging.getLogger(__name__)


def reconcile_orphaned_uploads(
    admin_repository: DocumentAdminRepository,
    object_store: ObjectStore,
    grace: timedelta,
    now: Optional[datetime] = None
) -> int:
    """
    Repara subidas que quedaron a medias: documentos PENDING sin ruta cuyo
    PDF sí alcanzó a llegar al storage. Los que no tienen PDF se dejan
    registrados en el log para revisión manual.

    Retorna cuántos documentos se repararon.
    """
    cutoff = (now or datetime.now(timezone.utc)) - grace
    repaired = 0

    for doc in admin_repository.find_orphaned_uploads(cutoff):
        path = original_pdf_path(doc.user_id, doc.id)
        try:
            if object_store.exists(path):
                admin_repository.update_document_path(doc.id, path)
                repaired += 1
                logger.info("Reconciled orphaned upload %s with %s", doc.id, path)
            else:
                logger.warning("Document %s has no stored PDF; left for manual review", doc.id)
        except DocumentError as e:
            logger.error("Could not reconcile document %s: %s", doc.id, e)

    return repaired
