"""
Import all models here so that:
1. Alembic can auto-detect them when generating migrations
2. Relationships between models resolve correctly

Parent tables are imported before child tables.
"""

from app.models.role import RoleName
from app.models.user import User
from app.models.refresh_token import RefreshToken
from app.models.reset_token import ResetToken
from app.models.audit_log import AuditLog

__all__ = [
    "RoleName",
    "User",
    "RefreshToken",
    "ResetToken",
    "AuditLog",
]
