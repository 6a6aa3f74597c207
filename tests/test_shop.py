"""
Tests for the shop: catalogue filters, cart, favorites and checkout.
"""

from datetime import datetime, timezone

import pytest

from utils import db, shop

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def buyer(make_player):
    return make_player("Ma Ma")


@pytest.fixture
def racket(fake_db):
    return fake_db.seed("products", [{
        "name": "Yonex Astrox 77",
        "description": "Head heavy racket",
        "category_id": "rackets",
        "price": 185000,
        "stock": 2,
        "level_recommendation": "advanced",
        "images": [],
    }])[0]


@pytest.fixture
def shuttles(fake_db):
    return fake_db.seed("products", [{
        "name": "Feather Shuttlecocks (12)",
        "description": None,
        "category_id": "shuttles",
        "price": 32000,
        "stock": 50,
        "level_recommendation": None,
        "images": [],
    }])[0]


@pytest.fixture
def checkout_form():
    return {
        "transaction_id": "KBZ-123456",
        "delivery_name": "Ma Ma",
        "delivery_phone": "09 420 111 222",
        "delivery_address": "No. 12, 35th Street, Mandalay",
    }


def _cart_lines(user_id):
    lines = db.get_cart(user_id)
    return shop.cart_with_products(lines, db.get_products_by_ids([l["product_id"] for l in lines]))


# ============================================================================
# Catalogue
# ============================================================================

def test_filter_products(racket, shuttles):
    products = [racket, shuttles]
    assert [p["name"] for p in shop.filter_products(products, search="head heavy")] == [racket["name"]]
    assert [p["id"] for p in shop.filter_products(products, category_id="shuttles")] == [shuttles["id"]]
    # Products without a recommendation suit every level
    assert {p["id"] for p in shop.filter_products(products, level="beginner")} == {shuttles["id"]}
    assert shop.filter_products(products, favorites_only=True, favorites=[racket["id"]]) == [racket]


# ============================================================================
# Cart
# ============================================================================

class TestCart:
    def test_adding_same_product_increments_one_line(self, fake_db, buyer, racket):
        assert shop.add_to_cart(buyer["id"], racket) == 1
        assert shop.add_to_cart(buyer["id"], racket) == 2

        lines = fake_db.rows("cart", user_id=buyer["id"])
        assert len(lines) == 1
        assert lines[0]["quantity"] == 2

    def test_cannot_exceed_stock(self, fake_db, buyer, racket):
        shop.add_to_cart(buyer["id"], racket)
        shop.add_to_cart(buyer["id"], racket)
        with pytest.raises(ValueError, match="in stock"):
            shop.add_to_cart(buyer["id"], racket)
        assert fake_db.rows("cart")[0]["quantity"] == 2

    def test_anonymous_visitor_cannot_add(self, racket):
        with pytest.raises(ValueError, match="sign in"):
            shop.add_to_cart(None, racket)

    def test_zero_quantity_removes_line(self, fake_db, buyer, racket):
        shop.add_to_cart(buyer["id"], racket)
        line = fake_db.rows("cart")[0]
        shop.update_quantity(line["id"], 0)
        assert fake_db.rows("cart") == []

    def test_totals(self, buyer, racket, shuttles):
        shop.add_to_cart(buyer["id"], racket)
        shop.add_to_cart(buyer["id"], shuttles)
        shop.add_to_cart(buyer["id"], shuttles)

        lines = _cart_lines(buyer["id"])
        assert shop.cart_count(lines) == 3
        assert shop.cart_total(lines) == 185000 + 2 * 32000

    def test_lines_for_deleted_products_are_skipped(self):
        lines = [{"id": "l1", "product_id": "gone", "quantity": 1}]
        assert shop.cart_with_products(lines, {}) == []


def test_toggle_favorite(fake_db, buyer, racket):
    assert shop.toggle_favorite(buyer["id"], racket["id"]) is True
    assert db.get_favorites(buyer["id"]) == [racket["id"]]
    assert shop.toggle_favorite(buyer["id"], racket["id"]) is False
    assert fake_db.rows("favorites") == []


# ============================================================================
# Checkout
# ============================================================================

class TestCheckout:
    def test_checkout_uploads_receipt_and_creates_pending_order(self, fake_db, buyer, racket, shuttles, checkout_form):
        shop.add_to_cart(buyer["id"], racket)
        shop.add_to_cart(buyer["id"], shuttles)

        order = shop.checkout(buyer["id"], _cart_lines(buyer["id"]), checkout_form, "transfer.PNG", b"\x89PNG...", "image/png", now=NOW)

        path = f"{buyer['id']}/{int(NOW.timestamp() * 1000)}.png"
        assert ("receipts", path) in fake_db.uploads
        assert order["uploaded_screenshot"] == f"https://storage.test/receipts/{path}"
        assert order["payment_status"] == "pending"
        assert order["total_amount"] == 217000
        assert order["transaction_id"] == "KBZ-123456"

        items = fake_db.rows("order_items", order_id=order["id"])
        assert {(i["product_id"], i["quantity"], i["price"]) for i in items} == {
            (racket["id"], 1, 185000.0),
            (shuttles["id"], 1, 32000.0),
        }
        assert fake_db.rows("cart", user_id=buyer["id"]) == []

    def test_invalid_receipt_writes_nothing(self, fake_db, buyer, racket, checkout_form):
        shop.add_to_cart(buyer["id"], racket)
        with pytest.raises(ValueError, match="Payment screenshot"):
            shop.checkout(buyer["id"], _cart_lines(buyer["id"]), checkout_form, "notes.txt", b"hello", "text/plain", now=NOW)
        assert fake_db.rows("orders") == []
        assert fake_db.uploads == {}
        assert len(fake_db.rows("cart")) == 1

    def test_missing_transaction_id(self, buyer, racket, checkout_form):
        shop.add_to_cart(buyer["id"], racket)
        checkout_form["transaction_id"] = " "
        with pytest.raises(ValueError, match="Transaction ID"):
            shop.checkout(buyer["id"], _cart_lines(buyer["id"]), checkout_form, "r.png", b"x", "image/png", now=NOW)

    def test_empty_cart(self, buyer, checkout_form):
        with pytest.raises(ValueError, match="empty"):
            shop.checkout(buyer["id"], [], checkout_form, "r.png", b"x", "image/png", now=NOW)

    def test_order_history_includes_item_names(self, buyer, racket, checkout_form):
        shop.add_to_cart(buyer["id"], racket)
        shop.checkout(buyer["id"], _cart_lines(buyer["id"]), checkout_form, "r.jpg", b"jpg", "image/jpeg", now=NOW)

        history = shop.order_history(buyer["id"])
        assert len(history) == 1
        assert history[0]["items"][0]["product_name"] == "Yonex Astrox 77"
