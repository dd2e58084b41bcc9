# catalog_import/models/__init__.py

from .enums import ImportBehavior, ImportJobStatus, ErrorLevel, ValidationStrategy, CounterPolicy
from .schemas import ErrorDetailModel, ErrorType, StockRowModel


__all__ = [
    "ImportBehavior",
    "ImportJobStatus",
    "ErrorLevel",
    "ValidationStrategy",
    "CounterPolicy",
    "ErrorDetailModel",
    "ErrorType",
    "StockRowModel",
]
