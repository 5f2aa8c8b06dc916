from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from dealhub.core.database import Base


class UserRole:
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"
    # The same email may register independently under different tenants.
    __table_args__ = (UniqueConstraint("email", "tenant_id", name="uq_users_email_tenant"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    password_hash = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER)

    # Cache of SUM(point_history.points); only changed together with a ledger row.
    points = Column(Integer, nullable=False, default=0, server_default="0")
    banned = Column(Boolean, nullable=False, default=False)
    show_on_leaderboard = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tenant = relationship("Tenant", back_populates="users")
    deals = relationship("Deal", back_populates="user", cascade="all, delete-orphan")
    votes = relationship("Vote", back_populates="user", cascade="all, delete-orphan")
    point_history = relationship("PointHistory", back_populates="user", cascade="all, delete-orphan")
