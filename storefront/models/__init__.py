# Models package. Import all models here so Alembic can discover them.

from storefront.models.user import User  # noqa: F401
from storefront.models.product import Product  # noqa: F401
from storefront.models.transaction import Transaction  # noqa: F401
from storefront.models.callback_log import CallbackLog  # noqa: F401
