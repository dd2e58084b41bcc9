from enum import Enum


class ImportBehavior(str, Enum):
    """
    Run mode chosen for an import. REPLACE and APPEND share the same upsert
    logic; DELETE is accepted but performs no changes.
    """
    DELETE = "delete"
    REPLACE = "replace"
    APPEND = "append"


class ImportJobStatus(str, Enum):
    """
    Defines the possible statuses for an import session.
    """
    # Initial states
    PENDING = "pending"                 # Session created, file stored, task not yet picked up.

    # Processing states
    VALIDATING_SCHEMA = "validating_schema"         # Worker is checking the file header.
    DB_PROCESSING_STARTED = "db_processing_started" # Worker is iterating bunches and applying rows.

    # Terminal states
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors" # Some rows were rejected or skipped.
    COMPLETED_NO_CHANGES = "completed_no_changes"   # Behaviour was delete; nothing applied.
    COMPLETED_EMPTY_FILE = "completed_empty_file"   # Header only.

    FAILED_VALIDATION = "failed_validation"   # Unreadable file or missing columns.
    FAILED_PROCESSING = "failed_processing"   # Unexpected error while applying rows.

    def is_terminal(self) -> bool:
        return self not in (
            ImportJobStatus.PENDING,
            ImportJobStatus.VALIDATING_SCHEMA,
            ImportJobStatus.DB_PROCESSING_STARTED,
        )

    def is_failure(self) -> bool:
        return self in (
            ImportJobStatus.FAILED_VALIDATION,
            ImportJobStatus.FAILED_PROCESSING,
        )


class ErrorLevel(str, Enum):
    CRITICAL = "critical"
    NOT_CRITICAL = "not-critical"


class ValidationStrategy(str, Enum):
    STOP_ON_ERROR = "stop-on-error"
    SKIP_ERRORS = "skip-errors"


class CounterPolicy(str, Enum):
    # updated when the SKU is already in the catalog, created otherwise
    ENTITY_EXISTS = "entity_exists"
    # created when the row has no sku key, updated when it has one
    LEGACY = "legacy"
