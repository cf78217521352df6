from .reconcile_uploads import start_reconcile_job

__all__ = ['start_reconcile_job']
