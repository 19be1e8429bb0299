# Import models here so Alembic can discover metadata.
from app.models.company import Company  # noqa: F401
from app.models.user import User  # noqa: F401

# Catalog
from app.models.category import Category  # noqa: F401
from app.models.promotion import Promotion  # noqa: F401
from app.models.product import Product  # noqa: F401

# Orders
from app.models.order import Order, OrderItem  # noqa: F401
