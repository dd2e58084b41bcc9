from typing import Optional, Any
from catalog_import.models.schemas import ErrorType


class CatalogImportError(Exception):
    """
    Structured error raised by the import components. Carries enough context
    (field, offending value, original exception) to be turned into an
    ErrorDetailModel by whoever reports the run.
    """
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.UNKNOWN,
        field_name: Optional[str] = None,
        offending_value: Optional[Any] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.field_name = field_name
        self.offending_value = str(offending_value)[:255] if offending_value is not None else None # Truncate
        self.original_exception = original_exception

    def __str__(self):
        return f"CatalogImportError ({self.error_type.value}): {self.message}" \
               f"{f' | Field: {self.field_name}' if self.field_name else ''}" \
               f"{f' | Value: {self.offending_value}' if self.offending_value is not None else ''}" \
               f"{f' | Original: {type(self.original_exception).__name__}: {str(self.original_exception)}' if self.original_exception else ''}"


class NoSuchEntityError(CatalogImportError):
    def __init__(self, entity_name: str, lookup_key: str, lookup_value: Any):
        message = f"{entity_name} with {lookup_key} '{str(lookup_value)[:50]}' does not exist."
        super().__init__(message, ErrorType.LOOKUP, lookup_key, lookup_value)
