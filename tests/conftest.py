import os
import sys
import tempfile

# Keep import-time app setup away from the project tree.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="airi-uploads-"))
os.environ.setdefault("DATA_FILE", os.path.join(tempfile.mkdtemp(prefix="airi-data-"), "database.json"))

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from airi_market.models import Availability, Catalog, Product, UserRecord


def _product(idx, title, price, town, available=True):
    return Product(
        id=f"p-{idx}",
        seller_id="s-online",
        title=title,
        price=price,
        town=town,
        available_now=available,
        category="misc",
    )


@pytest.fixture
def catalog():
    users = [
        UserRecord(id="s-offline", phone="1", name="Otieno", role="seller",
                   availability=Availability(status="offline", back_at="not-a-date")),
        UserRecord(id="s-busy", phone="2", name="Wanjiru", role="seller",
                   availability=Availability(status="busy")),
        UserRecord(id="s-online", phone="3", name="Kamau", role="seller",
                   availability=Availability(status="online")),
        UserRecord(id="s-none", phone="4", name="Njeri", role="seller"),
    ]
    products = [
        _product(1, "Lamp", 1000, "Nairobi"),
        _product(2, "Old TV", 2500, "Nairobi", available=False),
        _product(3, "Chair", 2000, "nairobi"),
        _product(4, "Sofa", 8000, "Mombasa"),
        _product(5, "Bed", 3000, "Nairobi"),
        _product(6, "Fridge", 4000, "Nairobi"),
        _product(7, "Ring light", 5000, "Nairobi"),
    ]
    return Catalog(users=users, products=products)
