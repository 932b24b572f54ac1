"""Faker-based data generators for Locust load test scenarios.

Menu and coupon identifiers come from ``loadtests/seed.json``, written by
``python src/manage.py seed-demo``. Everything else is generated per user.
"""

import json
import random
import uuid
from pathlib import Path

from faker import Faker

fake = Faker("pt_BR")

SEED_FILE = Path(__file__).parent / "seed.json"


def load_seed() -> dict:
    """Product ids and coupon codes created by the seed command."""
    return json.loads(SEED_FILE.read_text())


def user_id() -> str:
    return f"lt-{uuid.uuid4().hex[:12]}"


def add_line_data(seed: dict) -> dict:
    return {"product_id": random.choice(seed["product_ids"])}


def coupon_code(seed: dict) -> str:
    """A seeded code most of the time, an unknown one otherwise."""
    if random.random() < 0.8:
        return random.choice(seed["coupon_codes"])
    return fake.bothify("????##").upper()


def checkout_data() -> dict:
    """Pickup checkout payload; cash orders ask for change on a R$ 200.00 note."""
    method = random.choice(["pix", "credit_card", "debit_card", "cash"])
    payload = {
        "delivery_mode": "pickup",
        "payment_method": method,
        "notes": fake.sentence(nb_words=6) if random.random() < 0.3 else None,
    }
    if method == "cash":
        payload["change_for"] = 20000
    return payload
