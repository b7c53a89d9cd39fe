# Import models here so Alembic can discover them via metadata
from .user import User  # noqa: F401
from .product import Product  # noqa: F401
from .application import Application  # noqa: F401
from .payment import Payment  # noqa: F401
from .assessment import Assessment  # noqa: F401
from .notification import Notification  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
from .certificate import Certificate  # noqa: F401
