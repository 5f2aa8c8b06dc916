#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from dealhub.core.database import SessionLocal  # noqa: E402
from dealhub.core.errors import DealHubError  # noqa: E402
from dealhub.services.tenants import create_tenant  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a tenant.")
    parser.add_argument("--name", required=True, help="Company name")
    parser.add_argument("--subdomain", required=True, help="Lowercase letters, digits and hyphens")
    parser.add_argument("--brand-name", help="Display name (defaults to --name)")
    parser.add_argument("--custom-domain", help="Optional custom domain, e.g. deals.example.org")
    parser.add_argument("--owner-email")
    parser.add_argument("--owner-name")
    parser.add_argument("--tagline")
    parser.add_argument("--primary-color", default="#3b82f6")
    parser.add_argument("--secondary-color", default="#1e40af")
    parser.add_argument("--accent-color", default="#10b981")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    optional = {
        "custom_domain": args.custom_domain,
        "owner_email": args.owner_email,
        "owner_name": args.owner_name,
        "tagline": args.tagline,
    }

    db = SessionLocal()
    try:
        tenant = create_tenant(
            db,
            name=args.name,
            subdomain=args.subdomain,
            brand_name=args.brand_name,
            primary_color=args.primary_color,
            secondary_color=args.secondary_color,
            accent_color=args.accent_color,
            **{key: value for key, value in optional.items() if value},
        )
    except DealHubError as exc:
        print(f"Error: {exc.detail}")
        return 1
    finally:
        db.close()

    print(f"Tenant created: id={tenant.id} subdomain={tenant.subdomain}")
    if tenant.custom_domain:
        print(f"Custom domain: {tenant.custom_domain}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
