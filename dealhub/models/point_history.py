from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from dealhub.core.database import Base


class PointHistory(Base):
    """Append-only ledger entry. Rows are never updated or deleted."""

    __tablename__ = "point_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Deal the entry was earned on, if any. Plain column so ledger rows stay untouched.
    deal_id = Column(Integer, nullable=True, index=True)
    points = Column(Integer, nullable=False)
    reason = Column(String(64), nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", back_populates="point_history")
