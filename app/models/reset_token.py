from sqlalchemy import Column, Integer, String, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class ResetToken(Base):
    __tablename__ = "reset_tokens"

    id        = Column(Integer, primary_key=True, index=True)
    token     = Column(String(128), nullable=False, unique=True)
    userId    = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expiresAt = Column(TIMESTAMP(timezone=True), nullable=False)
    createdAt = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    user = relationship("User", back_populates="reset_tokens")

    def __repr__(self):
        return f"<ResetToken id={self.id} userId={self.userId} expiresAt={self.expiresAt}>"
