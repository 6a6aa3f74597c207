"""
Shop, cart, favorites and checkout.

Payment is a manual bank/KBZPay transfer: the buyer uploads a screenshot of
the transfer with the transaction id and an admin approves the order later.
"""

import logging
from datetime import datetime, timezone
from pathlib import PurePath

from utils import db
from utils.constants import RECEIPT_MIME_TYPES, RECEIPTS_BUCKET
from utils.validation import validate_checkout, validate_upload

logger = logging.getLogger(__name__)

# CATALOGUE

# Filter products by name/description search, category and recommended level
def filter_products(products, search="", category_id=None, level=None, favorites_only=False, favorites=()):
    term = (search or "").strip().lower()
    result = []
    for product in products:
        text = f"{product.get('name', '')} {product.get('description') or ''}".lower()
        if term and term not in text:
            continue
        if category_id not in (None, "all") and product.get("category_id") != category_id:
            continue
        if level not in (None, "all") and product.get("level_recommendation") not in (level, None, "all"):
            continue
        if favorites_only and product.get("id") not in favorites:
            continue
        result.append(product)
    return result

# CART

# Add one unit; an existing line for the same product is incremented instead of duplicated
def add_to_cart(user_id, product):
    if not user_id:
        raise ValueError("Please sign in to add items to your cart")
    stock = product.get("stock")
    line = db.find_cart_line(user_id, product["id"])
    quantity = (line["quantity"] + 1) if line else 1
    if stock is not None and quantity > int(stock):
        raise ValueError(f"Only {stock} of {product.get('name', 'this item')} in stock")
    if line:
        db.update_cart_line(line["id"], quantity)
    else:
        db.insert_cart_line(user_id, product["id"], 1)
    db.invalidate("get_cart")
    return quantity

# A quantity of zero or less removes the line
def update_quantity(line_id, quantity):
    if quantity <= 0:
        db.delete_cart_line(line_id)
    else:
        db.update_cart_line(line_id, int(quantity))
    db.invalidate("get_cart")

def remove_line(line_id):
    db.delete_cart_line(line_id)
    db.invalidate("get_cart")

# Cart rows joined with their product, skipping products that were deleted
def cart_with_products(lines, products_by_id):
    joined = []
    for line in lines:
        product = products_by_id.get(line.get("product_id"))
        if product:
            joined.append(dict(line, product=product))
    return joined

def cart_total(lines):
    return sum(float(line["product"].get("price") or 0) * int(line.get("quantity") or 0) for line in lines)

def cart_count(lines):
    return sum(int(line.get("quantity") or 0) for line in lines)

# FAVORITES

# Returns True when the product is now a favorite
def toggle_favorite(user_id, product_id):
    if not user_id:
        raise ValueError("Please sign in to save favorites")
    existing = db.find_favorite(user_id, product_id)
    if existing:
        db.delete_favorite(existing["id"])
    else:
        db.insert_favorite(user_id, product_id)
    db.invalidate("get_favorites")
    return existing is None

# CHECKOUT

def _receipt_path(user_id, filename, now):
    ext = PurePath(filename or "").suffix.lstrip(".").lower() or "png"
    return f"{user_id}/{int(now.timestamp() * 1000)}.{ext}"

def checkout(user_id, lines, form, receipt_name, receipt_bytes, receipt_type, now=None):
    """Place an order from the cart.

    Args:
        user_id: Buyer.
        lines: Output of ``cart_with_products``.
        form: transaction_id, delivery_name, delivery_phone, delivery_address.
        receipt_name / receipt_bytes / receipt_type: The uploaded screenshot.

    Returns:
        dict: The created order row.
    """
    if not lines:
        raise ValueError("Your cart is empty")
    valid, error = validate_checkout(form)
    if not valid:
        raise ValueError(error)
    valid, error = validate_upload(len(receipt_bytes or b""), receipt_type, RECEIPT_MIME_TYPES)
    if not valid:
        raise ValueError(f"Payment screenshot: {error}")

    now = now or datetime.now(timezone.utc)
    receipt_url = db.upload_file(RECEIPTS_BUCKET, _receipt_path(user_id, receipt_name, now), receipt_bytes, receipt_type)

    order = db.insert_order({
        "user_id": user_id,
        "total_amount": cart_total(lines),
        "transaction_id": form["transaction_id"].strip(),
        "uploaded_screenshot": receipt_url,
        "payment_status": "pending",
        "delivery_name": form["delivery_name"].strip(),
        "delivery_phone": form["delivery_phone"].strip(),
        "delivery_address": form["delivery_address"].strip(),
    })
    db.insert_order_items([
        {
            "order_id": order["id"],
            "product_id": line["product_id"],
            "quantity": int(line["quantity"]),
            "price": float(line["product"].get("price") or 0),
        }
        for line in lines
    ])
    db.clear_cart(user_id)
    logger.info(f"Order {order['id']} placed by {user_id}: {order['total_amount']}")
    db.invalidate("get_cart", "get_orders")
    return order

# Orders of a user with their line items and product names
def order_history(user_id):
    orders = db.get_orders(user_id)
    items = db.get_order_items([o["id"] for o in orders])
    products = db.get_products_by_ids([i["product_id"] for i in items])
    by_order = {}
    for item in items:
        name = (products.get(item["product_id"]) or {}).get("name", "Removed product")
        by_order.setdefault(item["order_id"], []).append(dict(item, product_name=name))
    return [dict(order, items=by_order.get(order["id"], [])) for order in orders]
