from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, ForeignKey, Numeric,
    Index, Text, BigInteger
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func # For server-side default timestamps
from .base_class import Base


# --- Import Session (history) Model ---
class ImportSessionOrm(Base):
    __tablename__ = "import_sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(String(64), unique=True, index=True, nullable=False)
    entity_code = Column(String(64), nullable=False)
    behavior = Column(String(32), nullable=False)
    original_filename = Column(String(255), nullable=True)
    file_path = Column(String(500), nullable=True)
    status = Column(String(64), default="pending", nullable=False, index=True)
    details = Column(Text, nullable=True) # JSON list of ErrorDetailModel dumps
    record_count = Column(Integer, nullable=True)
    error_count = Column(Integer, nullable=True)
    items_created = Column(Integer, nullable=True)
    items_updated = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_import_session_status_created_at', "status", "created_at"),
    )


# --- Catalog Models ---
class CategoryOrm(Base):
    __tablename__ = "catalog_categories"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    name = Column(String(150), nullable=False, index=True)
    parent_id = Column(BigInteger, ForeignKey("catalog_categories.id"), nullable=True) # Self-referencing FK
    parent = relationship("CategoryOrm", remote_side=[id], backref="children")


class ProductOrm(Base):
    __tablename__ = "catalog_products"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    price = Column(Numeric(12, 4), nullable=True)
    visibility = Column(Integer, nullable=True) # 1..4, see VISIBILITY_OPTIONS
    category_id = Column(BigInteger, ForeignKey("catalog_categories.id"), nullable=True)
    category = relationship("CategoryOrm")

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


# --- Inventory Model ---
class StockItemOrm(Base):
    __tablename__ = "stock_items"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    qty = Column(Numeric(12, 4), nullable=False, default=0)
    is_in_stock = Column(Boolean, nullable=False, default=False)

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
