from celery import Celery
from catalog_import.core.config import settings  # centralized settings
import logging

logger = logging.getLogger(__name__)

# Initialize Celery application with broker and backend URLs from settings
celery_app = Celery(
    'catalog_import',
    broker=str(settings.CELERY_BROKER_URL),
    backend=str(settings.CELERY_RESULT_BACKEND_URL),
    include=['catalog_import.tasks.import_jobs']  # ensure import_jobs module is imported
)

# Load additional configuration from celeryconfig.py
celery_app.config_from_object('celeryconfig')

# Auto-discover tasks in the catalog_import.tasks package
celery_app.autodiscover_tasks(['catalog_import.tasks'])
