"""Storefront database management CLI.

Usage:
    python src/manage.py setup-db    # Create all tables
    python src/manage.py drop-db     # Drop all tables
    python src/manage.py seed-demo   # Demo menu and coupons for load tests

Run with ``PROTEAN_ENV=production`` to act on the PostgreSQL database
configured in ``domain.toml``.
"""

import argparse
import json
import sys
from pathlib import Path

SEED_FILE = Path(__file__).resolve().parent.parent / "loadtests" / "seed.json"

DEMO_PRODUCTS = [
    ("X-Burger", 2890),
    ("X-Bacon", 3290),
    ("Smash Duplo", 3590),
    ("Batata Frita", 1490),
    ("Refrigerante Lata", 690),
]
DEMO_COUPONS = [
    ("BEMVINDO10", "percentage", 10, 3000),
    ("FRETE5", "fixed", 500, 0),
]


def setup_database():
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_database():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def seed_demo():
    from protean.utils.globals import current_domain

    from storefront.coupon.coupon import Coupon
    from storefront.domain import storefront
    from storefront.menu.product import Product

    print("Initializing storefront domain...")
    storefront.init()

    with storefront.domain_context():
        product_ids = []
        for name, price in DEMO_PRODUCTS:
            product = Product(name=name, price=price)
            current_domain.repository_for(Product).add(product)
            product_ids.append(str(product.id))

        for code, discount_type, value, minimum in DEMO_COUPONS:
            current_domain.repository_for(Coupon).add(
                Coupon.create(code=code, discount_type=discount_type, discount_value=value, min_order_value=minimum)
            )

    SEED_FILE.write_text(
        json.dumps({"product_ids": product_ids, "coupon_codes": [code for code, *_ in DEMO_COUPONS]}, indent=2)
    )
    print(f"Seeded {len(product_ids)} products and {len(DEMO_COUPONS)} coupons into {SEED_FILE}")


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed-demo", help="Create a demo menu and coupons for load tests")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed-demo":
        seed_demo()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
