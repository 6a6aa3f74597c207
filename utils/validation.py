"""
Input validation for ShuttleMatch forms.

Every validator returns ``(is_valid, error_message)`` so pages can show the
message directly and skip the write.
"""

import html
import re
from typing import Any, Optional

from utils.constants import (
    MAX_UPLOAD_BYTES,
    MESSAGE_MAX_LENGTH,
    MIN_PASSWORD_LENGTH,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PHONE_MAX_LENGTH,
    POST_MAX_LENGTH,
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^[0-9+\-\s()]*$")

DANGEROUS_PATTERNS = [
    r'<script',
    r'javascript:',
    r'onerror=',
    r'onload=',
    r'<iframe',
    r'eval\(',
]


def sanitize_html(text: str) -> str:
    """Escape HTML before rendering user text with unsafe_allow_html"""
    if not text:
        return ""
    return html.escape(text)


def validate_text(text: str, max_length: int, label: str = "Text") -> tuple[bool, Optional[str]]:
    """Required free text with a length limit and no script injection"""
    if not text or not text.strip():
        return False, f"{label} cannot be empty"
    if len(text) > max_length:
        return False, f"{label} exceeds maximum length of {max_length} characters"
    for pattern in DANGEROUS_PATTERNS:
        if re.search(pattern, text, re.IGNORECASE):
            return False, f"{label} contains potentially dangerous content"
    return True, None


def validate_post(text: str) -> tuple[bool, Optional[str]]:
    return validate_text(text, POST_MAX_LENGTH, "Post")


def validate_message(text: str) -> tuple[bool, Optional[str]]:
    return validate_text(text, MESSAGE_MAX_LENGTH, "Message")


def validate_email(email: str) -> tuple[bool, Optional[str]]:
    if not email or not _EMAIL_RE.match(email.strip()):
        return False, "Please enter a valid email address"
    return True, None


def validate_password(password: str, confirm: Optional[str] = None) -> tuple[bool, Optional[str]]:
    """Minimum length, and equality with the confirmation when one is given"""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if confirm is not None and password != confirm:
        return False, "Passwords do not match"
    return True, None


def validate_phone(phone: str, required: bool = False) -> tuple[bool, Optional[str]]:
    if not phone:
        return (False, "Phone number is required") if required else (True, None)
    if len(phone) > PHONE_MAX_LENGTH:
        return False, f"Phone number must be at most {PHONE_MAX_LENGTH} characters"
    if not _PHONE_RE.match(phone):
        return False, "Phone number contains invalid characters"
    return True, None


def validate_profile(name: str, phone: str) -> tuple[bool, Optional[str]]:
    """Profile edit form: name 2-100 characters, optional phone"""
    name = (name or "").strip()
    if len(name) < NAME_MIN_LENGTH or len(name) > NAME_MAX_LENGTH:
        return False, f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
    return validate_phone(phone)


def validate_court(form: dict) -> tuple[bool, Optional[str]]:
    """Court name and address are required; rating must be 0-5 if given"""
    if not (form.get("court_name") or "").strip():
        return False, "Court name is required"
    if not (form.get("address") or "").strip():
        return False, "Address is required"
    rating = form.get("rating")
    if rating not in (None, ""):
        try:
            value = float(rating)
        except (ValueError, TypeError):
            return False, "Rating must be a number"
        if not 0 <= value <= 5:
            return False, "Rating must be between 0 and 5"
    return True, None


def validate_product(form: dict) -> tuple[bool, Optional[str]]:
    if not (form.get("name") or "").strip():
        return False, "Product name is required"
    try:
        if float(form.get("price")) < 0:
            return False, "Price cannot be negative"
    except (ValueError, TypeError):
        return False, "Price must be a number"
    stock = form.get("stock")
    if stock not in (None, ""):
        try:
            if int(stock) < 0:
                return False, "Stock cannot be negative"
        except (ValueError, TypeError):
            return False, "Stock must be a whole number"
    return True, None


def validate_checkout(form: dict) -> tuple[bool, Optional[str]]:
    """Delivery details and the bank transaction id are all required"""
    labels = {
        "transaction_id": "Transaction ID",
        "delivery_name": "Delivery name",
        "delivery_phone": "Delivery phone",
        "delivery_address": "Delivery address",
    }
    for field, label in labels.items():
        if not (form.get(field) or "").strip():
            return False, f"{label} is required"
    return validate_phone(form["delivery_phone"], required=True)


def validate_upload(size: int, mime_type: str, allowed_types) -> tuple[bool, Optional[str]]:
    """File uploads: size limit and MIME whitelist (``"image/*"`` allowed)"""
    if size is None or size <= 0:
        return False, "Please select a file"
    if size > MAX_UPLOAD_BYTES:
        return False, f"File must be smaller than {MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
    mime_type = mime_type or ""
    for allowed in allowed_types:
        if allowed.endswith("/*") and mime_type.startswith(allowed[:-1]):
            return True, None
        if mime_type == allowed:
            return True, None
    return False, "Unsupported file type"


def validate_score(value: Any) -> tuple[bool, Optional[str]]:
    try:
        score = int(value)
    except (ValueError, TypeError):
        return False, "Scores must be whole numbers"
    if score < 0:
        return False, "Scores cannot be negative"
    return True, None
