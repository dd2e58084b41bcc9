"""
SQLAlchemy-backed stores used by the stock import.

Each write commits on its own: the product and stock updates of a row are
independent best-effort operations, so a failure in one must not roll back
the others already applied in the run.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from catalog_import.db.models import CategoryOrm, ProductOrm, StockItemOrm
from catalog_import.exceptions import CatalogImportError, NoSuchEntityError
from catalog_import.models.schemas import ErrorType

logger = logging.getLogger(__name__)


def _commit_or_raise(db_session: Session, what: str, sku: str) -> None:
    try:
        db_session.commit()
    except SQLAlchemyError as e:
        db_session.rollback()
        raise CatalogImportError(
            message=f"Could not save {what}: {e}",
            error_type=ErrorType.DATABASE,
            field_name="sku",
            offending_value=sku,
            original_exception=e,
        )


class ProductRepository:
    def __init__(self, db_session: Session):
        self.db_session = db_session

    def get_by_sku(self, sku: str) -> ProductOrm:
        product = self.db_session.query(ProductOrm).filter(ProductOrm.sku == sku).one_or_none()
        if product is None:
            raise NoSuchEntityError("Product", "sku", sku)
        return product

    def exists(self, sku: str) -> bool:
        return self.db_session.query(ProductOrm.id).filter(ProductOrm.sku == sku).first() is not None

    def save(self, product: ProductOrm) -> ProductOrm:
        self.db_session.add(product)
        _commit_or_raise(self.db_session, "product", product.sku)
        logger.debug(f"Saved product '{product.sku}' (ID={product.id})")
        return product

    def discard(self) -> None:
        """Drops uncommitted changes, e.g. a product left half-updated by a failed step."""
        self.db_session.rollback()


class CategoryDirectory:
    def __init__(self, db_session: Session):
        self.db_session = db_session

    def find_first_by_name(self, name: str) -> Optional[CategoryOrm]:
        """Exact name match; the lowest id wins when names repeat."""
        return (
            self.db_session.query(CategoryOrm)
            .filter(CategoryOrm.name == name)
            .order_by(CategoryOrm.id)
            .limit(1)
            .first()
        )


class StockRegistry:
    def __init__(self, db_session: Session):
        self.db_session = db_session

    def get_stock_item_by_sku(self, sku: str) -> StockItemOrm:
        """Existing stock item for the SKU, or a new unsaved one."""
        item = self.db_session.query(StockItemOrm).filter(StockItemOrm.sku == sku).one_or_none()
        if item is None:
            logger.info(f"No stock item for '{sku}', a new one will be created.")
            item = StockItemOrm(sku=sku, qty=0, is_in_stock=False)
        return item

    def update_stock_item_by_sku(self, sku: str, stock_item: StockItemOrm) -> int:
        if stock_item.sku != sku:
            raise CatalogImportError(
                message=f"Stock item belongs to '{stock_item.sku}', not '{sku}'",
                error_type=ErrorType.VALIDATION,
                field_name="sku",
                offending_value=sku,
            )
        self.db_session.add(stock_item)
        _commit_or_raise(self.db_session, "stock item", sku)
        return stock_item.id

    def discard(self) -> None:
        self.db_session.rollback()
