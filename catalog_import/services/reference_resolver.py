import logging
from typing import Dict, Optional

from catalog_import.services.repositories import CategoryDirectory

logger = logging.getLogger(__name__)

VISIBILITY_OPTIONS: Dict[int, str] = {
    1: "Not Visible Individually",
    2: "Catalog",
    3: "Search",
    4: "Catalog, Search",
}


class ReferenceResolver:
    """Turns human-readable row values into catalog identifiers."""

    def __init__(self, category_directory: CategoryDirectory):
        self.category_directory = category_directory

    def resolve_category(self, name: str) -> Optional[int]:
        category = self.category_directory.find_first_by_name(name)
        if category is None:
            logger.info(f"Category '{name}' not found; category left unchanged.")
            return None
        return category.id

    @staticmethod
    def resolve_visibility(label: str) -> Optional[int]:
        for code, option in VISIBILITY_OPTIONS.items():
            if option == label:
                return code
        logger.warning(f"Unknown visibility '{label}'; visibility left unchanged.")
        return None
