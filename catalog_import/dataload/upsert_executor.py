import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable

from catalog_import.exceptions import CatalogImportError, NoSuchEntityError
from catalog_import.models.schemas import ErrorType, StockRowModel
from catalog_import.services.reference_resolver import ReferenceResolver
from catalog_import.services.repositories import ProductRepository, StockRegistry

logger = logging.getLogger(__name__)


def parse_decimal(raw: str, field_name: str) -> Decimal:
    try:
        return Decimal(raw.strip())
    except (InvalidOperation, AttributeError) as e:
        raise CatalogImportError(
            message=f"'{raw}' is not a number",
            error_type=ErrorType.VALIDATION,
            field_name=field_name,
            offending_value=raw,
            original_exception=e,
        )


class UpsertExecutor:
    """
    Applies accepted rows to the catalog and to inventory.

    The product update and the stock update of a row are independent: a
    product that cannot be loaded or saved does not stop its stock update,
    and a failed row never stops the rows after it.
    """

    def __init__(
        self,
        product_repository: ProductRepository,
        stock_registry: StockRegistry,
        resolver: ReferenceResolver,
    ):
        self.product_repository = product_repository
        self.stock_registry = stock_registry
        self.resolver = resolver
        self.applied_count = 0
        self.product_failures = 0
        self.stock_failures = 0

    def apply_rows(self, rows: Iterable[StockRowModel]) -> bool:
        applied = False
        for row in rows:
            self._update_product(row)
            self._update_stock(row)
            self.applied_count += 1
            applied = True
        return applied

    def _update_product(self, row: StockRowModel) -> None:
        try:
            product = self.product_repository.get_by_sku(row.sku)
        except NoSuchEntityError:
            logger.info(f"Product '{row.sku}' not in catalog; only stock will be updated.")
            return
        except Exception as e:
            self.product_failures += 1
            logger.critical(f"Product '{row.sku}' could not be loaded: {e}", exc_info=True)
            self._discard(self.product_repository, row.sku)
            return

        try:
            product.price = parse_decimal(row.price, "price")
            visibility = self.resolver.resolve_visibility(row.value)
            if visibility is not None:
                product.visibility = visibility
            category_id = self.resolver.resolve_category(row.category)
            if category_id is not None:
                product.category_id = category_id
            self.product_repository.save(product)
        except Exception as e:
            self.product_failures += 1
            logger.critical(f"Product '{row.sku}' was not saved: {e}", exc_info=True)
            self._discard(self.product_repository, row.sku)

    def _update_stock(self, row: StockRowModel) -> None:
        try:
            qty = parse_decimal(row.qty, "qty")
            stock_item = self.stock_registry.get_stock_item_by_sku(row.sku)
            stock_item.qty = qty
            stock_item.is_in_stock = qty != 0
            self.stock_registry.update_stock_item_by_sku(row.sku, stock_item)
        except Exception as e:
            self.stock_failures += 1
            logger.critical(f"Stock for '{row.sku}' was not updated: {e}", exc_info=True)
            self._discard(self.stock_registry, row.sku)

    @staticmethod
    def _discard(store, sku: str) -> None:
        # a failed step must not leave pending changes for the next commit
        try:
            store.discard()
        except Exception:
            logger.exception(f"Rollback after failed update of '{sku}' failed")
