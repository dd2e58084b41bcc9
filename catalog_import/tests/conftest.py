import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from catalog_import.db.base_class import Base  # noqa: E402
from catalog_import.db.models import CategoryOrm, ProductOrm, StockItemOrm  # noqa: E402


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return sessionmaker(bind=sqlite_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_catalog(db_session):
    """Two categories named 'Shoes' (ids 7 and 8), one 'Bags', and product ABC123."""
    db_session.add_all([
        CategoryOrm(id=7, name="Shoes"),
        CategoryOrm(id=8, name="Shoes"),
        CategoryOrm(id=9, name="Bags"),
    ])
    db_session.flush()
    db_session.add(ProductOrm(sku="ABC123", name="Runner", price=10, visibility=4, category_id=9))
    db_session.add(StockItemOrm(sku="ABC123", qty=3, is_in_stock=True))
    db_session.commit()
    return db_session
