from catalog_import.core.config import settings  # Import centralized settings
import logging

logger = logging.getLogger(__name__)

# Celery connection URLs are sourced from the `settings` object,
# which derives them from the Redis settings unless given explicitly.
broker_url = str(settings.CELERY_BROKER_URL) if settings.CELERY_BROKER_URL else None
result_backend = str(settings.CELERY_RESULT_BACKEND_URL) if settings.CELERY_RESULT_BACKEND_URL else None

if not broker_url:
    logger.error(
        "Celery broker URL is not configured in settings. "
        "Ensure Redis host, port, and Celery DB number are set, or a full CELERY_BROKER_URL is provided."
    )

# Celery Configuration
task_serializer = 'json'
result_serializer = 'json'
accept_content = ['json']

# one import at a time per worker process; rows inside a run are sequential
worker_prefetch_multiplier = 1
task_acks_late = True
