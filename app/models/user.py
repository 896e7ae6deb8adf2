from sqlalchemy import Column, Integer, String, Boolean, Text, Enum, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
from app.models.role import RoleName


class User(Base):
    __tablename__ = "users"

    id                  = Column(Integer, primary_key=True, index=True)
    name                = Column(String(150), nullable=False)
    email               = Column(String(255), unique=True, nullable=False, index=True)
    mobile              = Column(String(30), nullable=True)
    password            = Column(String(255), nullable=False)
    role                = Column(Enum(RoleName, values_callable=lambda e: [r.value for r in e]),
                                 default=RoleName.CUSTOMER, nullable=False)
    tokenVersion        = Column(Integer, default=0, nullable=False)   # bumped to void every refresh token
    isRestricted        = Column(Boolean, default=False, nullable=False)
    restrictedAt        = Column(TIMESTAMP(timezone=True), nullable=True)
    restrictedBy        = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    restrictionReason   = Column(Text, nullable=True)
    restrictionLiftedAt = Column(TIMESTAMP(timezone=True), nullable=True)
    createdAt           = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updatedAt           = Column(TIMESTAMP(timezone=True), server_default=func.now(),
                                 onupdate=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")
    reset_tokens   = relationship("ResetToken", back_populates="user", cascade="all, delete-orphan")
    audit_logs     = relationship("AuditLog", back_populates="user")

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={self.role}>"
