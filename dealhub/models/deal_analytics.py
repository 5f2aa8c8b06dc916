from sqlalchemy import Column, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from dealhub.core.database import Base


class DealAnalytics(Base):
    """One counter bucket per deal, UTC calendar day and referral source."""

    __tablename__ = "deal_analytics"
    __table_args__ = (
        UniqueConstraint("deal_id", "date", "referral_source", name="uq_deal_analytics_bucket"),
    )

    id = Column(Integer, primary_key=True)
    deal_id = Column(Integer, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    referral_source = Column(String(64), nullable=False, default="direct")
    views = Column(Integer, nullable=False, default=0, server_default="0")
    clicks = Column(Integer, nullable=False, default=0, server_default="0")
    conversions = Column(Integer, nullable=False, default=0, server_default="0")

    deal = relationship("Deal", back_populates="analytics")
