from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from dealhub.core.database import Base


class DealStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Deal(Base):
    __tablename__ = "deals"
    __table_args__ = (UniqueConstraint("slug", "tenant_id", name="uq_deals_slug_tenant"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    affiliate_url = Column(String, nullable=False)
    status = Column(String(20), nullable=False, default=DealStatus.PENDING)

    # Lifetime counters; they track SUM over deal_analytics buckets.
    views = Column(Integer, nullable=False, default=0, server_default="0")
    clicks = Column(Integer, nullable=False, default=0, server_default="0")
    conversions = Column(Integer, nullable=False, default=0, server_default="0")

    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tenant = relationship("Tenant", back_populates="deals")
    user = relationship("User", back_populates="deals")
    votes = relationship("Vote", back_populates="deal", cascade="all, delete-orphan")
    analytics = relationship("DealAnalytics", back_populates="deal", cascade="all, delete-orphan")
