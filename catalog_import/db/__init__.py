# catalog_import/db/__init__.py

# Import Base from base_class, making it accessible via catalog_import.db.Base
from .base_class import Base

# Import all ORM models so they are registered with SQLAlchemy's metadata
from .models import ImportSessionOrm
from .models import CategoryOrm
from .models import ProductOrm
from .models import StockItemOrm
