from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from catalog_import.dataload.upsert_executor import UpsertExecutor
from catalog_import.db.models import ProductOrm, StockItemOrm
from catalog_import.exceptions import CatalogImportError, NoSuchEntityError
from catalog_import.models.schemas import StockRowModel
from catalog_import.services.reference_resolver import ReferenceResolver
from catalog_import.services.repositories import ProductRepository, StockRegistry


def make_row(**overrides):
    data = {"sku": "ABC123", "price": "19.99", "qty": "0", "value": "Catalog", "category": "Shoes"}
    data.update(overrides)
    return StockRowModel(**data)


@pytest.fixture
def product():
    return SimpleNamespace(sku="ABC123", price=Decimal("10"), visibility=4, category_id=3)


@pytest.fixture
def stock_items():
    return {}


@pytest.fixture
def product_repository(product):
    repo = MagicMock()

    def get_by_sku(sku):
        if sku == product.sku:
            return product
        raise NoSuchEntityError("Product", "sku", sku)

    repo.get_by_sku.side_effect = get_by_sku
    return repo


@pytest.fixture
def stock_registry(stock_items):
    registry = MagicMock()

    def get_item(sku):
        return stock_items.setdefault(sku, SimpleNamespace(sku=sku, qty=None, is_in_stock=None))

    registry.get_stock_item_by_sku.side_effect = get_item
    return registry


@pytest.fixture
def category_directory():
    directory = MagicMock()
    directory.find_first_by_name.side_effect = (
        lambda name: SimpleNamespace(id=7, name=name) if name == "Shoes" else None
    )
    return directory


@pytest.fixture
def executor(product_repository, stock_registry, category_directory):
    return UpsertExecutor(product_repository, stock_registry, ReferenceResolver(category_directory))


def test_row_updates_product_and_stock(executor, product, stock_items, product_repository, stock_registry):
    assert executor.apply_rows([make_row()]) is True

    assert product.price == Decimal("19.99")
    assert product.visibility == 2
    assert product.category_id == 7
    product_repository.save.assert_called_once_with(product)

    item = stock_items["ABC123"]
    assert item.qty == 0
    assert item.is_in_stock is False
    stock_registry.update_stock_item_by_sku.assert_called_once_with("ABC123", item)


def test_positive_quantity_is_in_stock(executor, stock_items):
    executor.apply_rows([make_row(qty="5")])
    assert stock_items["ABC123"].qty == Decimal("5")
    assert stock_items["ABC123"].is_in_stock is True


def test_unknown_category_keeps_previous_category(executor, product):
    executor.apply_rows([make_row(category="Hats")])
    assert product.category_id == 3
    assert product.price == Decimal("19.99")


def test_unknown_visibility_keeps_previous_visibility(executor, product, product_repository):
    executor.apply_rows([make_row(value="Everywhere")])
    assert product.visibility == 4
    product_repository.save.assert_called_once()


def test_missing_product_still_updates_stock(executor, product_repository, stock_items):
    assert executor.apply_rows([make_row(sku="NEW1", qty="2")]) is True

    product_repository.save.assert_not_called()
    assert stock_items["NEW1"].is_in_stock is True
    assert executor.product_failures == 0


def test_save_failure_does_not_block_stock_or_next_rows(executor, product_repository, stock_registry, stock_items):
    product_repository.save.side_effect = [CatalogImportError("db down"), None]

    executor.apply_rows([make_row(qty="1"), make_row(sku="NEW2", qty="4"), make_row(qty="6")])

    assert executor.product_failures == 1
    assert stock_registry.update_stock_item_by_sku.call_count == 3
    assert stock_items["ABC123"].qty == Decimal("6")
    assert stock_items["NEW2"].qty == Decimal("4")


def test_store_error_on_fetch_skips_product_side(executor, product_repository, stock_registry):
    product_repository.get_by_sku.side_effect = RuntimeError("timeout")

    executor.apply_rows([make_row()])

    assert executor.product_failures == 1
    product_repository.save.assert_not_called()
    stock_registry.update_stock_item_by_sku.assert_called_once()


def test_invalid_price_is_logged_and_stock_still_updated(executor, product, product_repository, stock_registry):
    executor.apply_rows([make_row(price="abc")])

    assert product.price == Decimal("10")
    product_repository.save.assert_not_called()
    stock_registry.update_stock_item_by_sku.assert_called_once()


def test_stock_failure_does_not_stop_following_rows(executor, stock_registry, product_repository):
    stock_registry.update_stock_item_by_sku.side_effect = [CatalogImportError("locked"), 1]

    assert executor.apply_rows([make_row(), make_row(sku="NEW3")]) is True
    assert executor.stock_failures == 1
    assert executor.applied_count == 2
    assert stock_registry.update_stock_item_by_sku.call_count == 2


def test_invalid_quantity_counts_as_stock_failure(executor, stock_registry):
    executor.apply_rows([make_row(qty="lots")])
    assert executor.stock_failures == 1
    stock_registry.update_stock_item_by_sku.assert_not_called()


def test_no_rows_applies_nothing(executor, product_repository):
    assert executor.apply_rows([]) is False
    product_repository.get_by_sku.assert_not_called()


def test_rows_applied_in_given_order(executor, product_repository):
    executor.apply_rows([make_row(sku="B"), make_row(sku="A"), make_row(sku="C")])
    assert [c.args[0] for c in product_repository.get_by_sku.call_args_list] == ["B", "A", "C"]


def test_failed_product_step_discards_pending_changes(executor, product_repository, stock_registry):
    product_repository.save.side_effect = CatalogImportError("db down")

    executor.apply_rows([make_row()])

    product_repository.discard.assert_called_once()
    stock_registry.discard.assert_not_called()


def test_failed_stock_step_discards_pending_changes(executor, product_repository, stock_registry):
    stock_registry.update_stock_item_by_sku.side_effect = CatalogImportError("locked")

    executor.apply_rows([make_row()])

    stock_registry.discard.assert_called_once()
    product_repository.discard.assert_not_called()


def test_half_updated_product_is_not_persisted_by_stock_commit(seeded_catalog, session_factory):
    category_directory = MagicMock()
    category_directory.find_first_by_name.side_effect = OperationalError(
        "SELECT", {}, Exception("database is locked")
    )
    executor = UpsertExecutor(
        ProductRepository(seeded_catalog),
        StockRegistry(seeded_catalog),
        ReferenceResolver(category_directory),
    )

    executor.apply_rows([make_row(price="55", value="Search", qty="2")])

    assert executor.product_failures == 1
    assert executor.stock_failures == 0

    other = session_factory()
    try:
        product = other.query(ProductOrm).filter_by(sku="ABC123").one()
        assert product.price == Decimal("10")
        assert product.visibility == 4
        assert other.query(StockItemOrm).filter_by(sku="ABC123").one().qty == Decimal("2")
    finally:
        other.close()
