from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlsplit

from sqlalchemy.orm import Session

from dealhub.core.config import DEFAULT_TENANT_SUBDOMAIN, PUBLIC_BASE_DOMAIN
from dealhub.models.tenant import Tenant, TenantStatus

logger = logging.getLogger(__name__)
TENANT_PREFIX = "[TENANT]"

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
RESERVED_SUBDOMAINS = frozenset(
    {
        "www",
        "api",
        "admin",
        "app",
        "mail",
        "ftp",
        "smtp",
        "pop",
        "imap",
        "blog",
        "shop",
        "store",
        "support",
        "help",
        "status",
        "staging",
        "dev",
    }
)
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})

SUBDOMAIN_HEADER = "x-tenant-subdomain"
DOMAIN_HEADER = "x-tenant-domain"


@dataclass(frozen=True)
class TenantHints:
    subdomain: Optional[str] = None
    custom_domain: Optional[str] = None


class TenantResolver:
    """Map an inbound host (or upstream routing hints) to an active tenant."""

    @staticmethod
    def normalize_host(host: str | None) -> str:
        normalized = (host or "").split(",")[0].strip().lower()
        if not normalized:
            return ""

        if "://" in normalized:
            return (urlsplit(normalized).hostname or "").lower()

        normalized = normalized.split("/")[0].strip()
        if normalized.startswith("["):
            return normalized[1:].split("]")[0]
        if ":" in normalized:
            normalized = normalized.split(":")[0].strip()
        return normalized.rstrip(".")

    @classmethod
    def normalize_base_domain(cls, base_domain: str | None) -> str:
        normalized = cls.normalize_host(base_domain or "")
        if normalized.startswith("*."):
            normalized = normalized[2:]
        return normalized.lstrip(".")

    @staticmethod
    def is_valid_subdomain(value: str | None) -> bool:
        if not value:
            return False
        if value.lower() in RESERVED_SUBDOMAINS:
            return False
        return bool(SUBDOMAIN_PATTERN.match(value))

    @classmethod
    def extract_subdomain(cls, host: str | None, base_domain: str | None = None) -> str | None:
        normalized_host = cls.normalize_host(host)
        if not normalized_host or normalized_host in LOCAL_HOSTS:
            return None

        base = cls.normalize_base_domain(base_domain)
        if base:
            if not normalized_host.endswith(f".{base}"):
                return None
            prefix = normalized_host[: -len(base) - 1]
            labels = prefix.split(".")
        else:
            labels = normalized_host.split(".")
            if len(labels) < 3:
                return None

        subdomain = labels[0]
        if not subdomain or subdomain == "www":
            return None
        return subdomain

    @classmethod
    def extract_hints(cls, headers: Mapping[str, str], base_domain: str | None = None) -> TenantHints:
        """Read routing hints from upstream headers, falling back to the host."""
        subdomain = (headers.get(SUBDOMAIN_HEADER) or "").strip().lower() or None
        custom_domain = cls.normalize_host(headers.get(DOMAIN_HEADER)) or None
        if subdomain or custom_domain:
            return TenantHints(subdomain=subdomain, custom_domain=custom_domain)

        host = headers.get("x-forwarded-host") or headers.get("host") or ""
        if base_domain is None:
            base_domain = PUBLIC_BASE_DOMAIN
        subdomain = cls.extract_subdomain(host, base_domain)
        normalized_host = cls.normalize_host(host)
        if subdomain:
            if cls.normalize_base_domain(base_domain):
                return TenantHints(subdomain=subdomain)
            # Without a base domain, sub.domain.tld may also be a custom domain.
            return TenantHints(subdomain=subdomain, custom_domain=normalized_host)

        if normalized_host and normalized_host not in LOCAL_HOSTS:
            return TenantHints(custom_domain=normalized_host)
        return TenantHints()

    @staticmethod
    def get_active_by_subdomain(db: Session, subdomain: str) -> Tenant | None:
        return (
            db.query(Tenant)
            .filter(Tenant.subdomain == subdomain.lower(), Tenant.status == TenantStatus.ACTIVE)
            .first()
        )

    @staticmethod
    def get_active_by_domain(db: Session, custom_domain: str) -> Tenant | None:
        return (
            db.query(Tenant)
            .filter(Tenant.custom_domain == custom_domain.lower(), Tenant.status == TenantStatus.ACTIVE)
            .first()
        )

    @classmethod
    def resolve(
        cls,
        db: Session,
        hints: TenantHints,
        default_subdomain: str | None = DEFAULT_TENANT_SUBDOMAIN,
    ) -> Tenant | None:
        subdomain = hints.subdomain
        named = bool(subdomain and cls.is_valid_subdomain(subdomain))
        if named:
            tenant = cls.get_active_by_subdomain(db, subdomain)
            if tenant is not None:
                return tenant

        if hints.custom_domain:
            tenant = cls.get_active_by_domain(db, hints.custom_domain)
            if tenant is not None:
                return tenant

        if named:
            # A named subdomain that misses never lands on the default tenant.
            logger.info("%s no active tenant for subdomain=%s", TENANT_PREFIX, subdomain)
            return None

        if default_subdomain:
            logger.warning(
                "%s falling back to default tenant subdomain=%s domain=%s",
                TENANT_PREFIX,
                default_subdomain,
                hints.custom_domain,
            )
            return cls.get_active_by_subdomain(db, default_subdomain)

        return None

    @classmethod
    def resolve_from_host(
        cls,
        db: Session,
        host: str,
        *,
        base_domain: str | None = None,
        default_subdomain: str | None = DEFAULT_TENANT_SUBDOMAIN,
    ) -> Tenant | None:
        hints = cls.extract_hints({"host": host}, base_domain=base_domain)
        return cls.resolve(db, hints, default_subdomain=default_subdomain)
