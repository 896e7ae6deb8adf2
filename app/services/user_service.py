from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.models.user import User
from app.models.role import RoleName
from app.utils.security import utcnow
from app.utils.audit import log_action
from app.utils.email import queue_email
from app.utils.email_templates import user_restricted_template, user_restriction_lifted_template
from app.utils.exceptions import NotFoundException, BadRequestException


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_user(u: User) -> dict:
    return {
        "id":                  u.id,
        "name":                u.name,
        "email":               u.email,
        "mobile":              u.mobile,
        "role":                u.role.value,
        "isRestricted":        u.isRestricted,
        "restrictedAt":        _iso(u.restrictedAt),
        "restrictionReason":   u.restrictionReason,
        "restrictionLiftedAt": _iso(u.restrictionLiftedAt),
        "createdAt":           _iso(u.createdAt),
    }


class UserService:

    # ─── Get by ID ────────────────────────────────────────────────────────────
    def get_user(self, db: Session, user_id: int) -> dict:
        u = db.query(User).filter(User.id == user_id).first()
        if not u:
            raise NotFoundException("User")
        return serialize_user(u)

    # ─── Restrict ─────────────────────────────────────────────────────────────
    def restrict_user(
        self, db: Session, user_id: int, reason: str, actor_id: int,
        background_tasks: BackgroundTasks,
    ) -> dict:
        u = db.query(User).filter(User.id == user_id).first()
        if not u:
            raise NotFoundException("User")
        if u.role == RoleName.ADMIN:
            raise BadRequestException("Cannot restrict admin user")
        if u.isRestricted:
            raise BadRequestException("User is already restricted")

        u.isRestricted = True
        u.restrictedAt = utcnow()
        u.restrictedBy = actor_id
        u.restrictionReason = reason
        log_action(db, actor_id, "RESTRICT", "User", u.id, f"Admin restricted user {u.name}: {reason}")
        db.commit()
        db.refresh(u)

        queue_email(
            background_tasks, u.email, "Your Account Has Been Restricted - HSM",
            user_restricted_template(u.name, reason),
        )
        return serialize_user(u)

    # ─── Lift Restriction ─────────────────────────────────────────────────────
    def lift_restriction(
        self, db: Session, user_id: int, actor_id: int, background_tasks: BackgroundTasks,
    ) -> dict:
        u = db.query(User).filter(User.id == user_id).first()
        if not u:
            raise NotFoundException("User")
        if not u.isRestricted:
            raise BadRequestException("User is not restricted")

        u.isRestricted = False
        u.restrictionReason = None
        u.restrictionLiftedAt = utcnow()
        log_action(db, actor_id, "LIFT_RESTRICTION", "User", u.id, f"Admin lifted restriction on {u.name}")
        db.commit()
        db.refresh(u)

        queue_email(
            background_tasks, u.email, "Your Account Restriction Has Been Lifted - HSM",
            user_restriction_lifted_template(u.name),
        )
        return serialize_user(u)


user_service = UserService()
