from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from config import get_settings
from database import SessionLocal
from modules.documents.repositories.document_admin_repository import DocumentAdminRepository
from modules.documents.services.cleanup import reconcile_orphaned_uploads
from modules.documents.services.object_store import ObjectStore


def start_reconcile_job(object_store: ObjectStore) -> BackgroundScheduler:
    settings = get_settings()
    scheduler = BackgroundScheduler()

    def job():
        with SessionLocal() as session:
            reconcile_orphaned_uploads(
                DocumentAdminRepository(session),
                object_store,
                grace=timedelta(minutes=settings.orphan_grace_minutes),
            )

    scheduler.add_job(job, 'interval', minutes=settings.reconcile_interval_minutes)
    scheduler.start()
    return scheduler
