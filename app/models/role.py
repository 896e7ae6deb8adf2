import enum


class RoleName(str, enum.Enum):
    CUSTOMER = "customer"
    STAFF    = "staff"
    PROVIDER = "provider"
    ADMIN    = "admin"


# Roles a visitor may pick on the public registration form
SELF_REGISTER_ROLES = (RoleName.CUSTOMER, RoleName.STAFF, RoleName.PROVIDER)
