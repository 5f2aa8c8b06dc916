from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship

from dealhub.core.database import Base


class TenantStatus:
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"

    ALL = (ACTIVE, INACTIVE, SUSPENDED)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    brand_name = Column(String(120), nullable=False)
    # Routing keys. Both are stored lowercase.
    subdomain = Column(String(63), unique=True, index=True, nullable=False)
    custom_domain = Column(String(255), unique=True, index=True, nullable=True)
    status = Column(String(20), nullable=False, default=TenantStatus.ACTIVE)

    # Branding, display only.
    logo = Column(String, nullable=True)
    favicon = Column(String, nullable=True)
    primary_color = Column(String(20), nullable=False, default="#3b82f6")
    secondary_color = Column(String(20), nullable=False, default="#1e40af")
    accent_color = Column(String(20), nullable=False, default="#10b981")
    tagline = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    meta_title = Column(String(255), nullable=True)
    meta_description = Column(Text, nullable=True)

    timezone = Column(String(64), nullable=False, default="UTC")
    currency = Column(String(8), nullable=False, default="USD")
    language = Column(String(8), nullable=False, default="en")

    owner_email = Column(String(255), nullable=True)
    owner_name = Column(String(120), nullable=True)
    max_users = Column(Integer, nullable=True)
    max_deals = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan")
    deals = relationship("Deal", back_populates="tenant", cascade="all, delete-orphan")
    shares = relationship("Share", back_populates="tenant", cascade="all, delete-orphan")
    audit_logs = relationship("AuditLog", cascade="all, delete-orphan")
