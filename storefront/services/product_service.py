"""Product service — catalogue reads and admin product creation."""

import logging
import re

from storefront.errors import NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.product import Product
from storefront.services.ledger_service import commit_or_raise

logger = logging.getLogger(__name__)

URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


def list_active_products():
    return (
        Product.query
        .filter_by(is_active=True)
        .order_by(Product.created_at.desc())
        .all()
    )


def get_purchasable_product(product_id):
    """Return an active product or raise NotFoundError.

    Unknown and inactive products are indistinguishable to callers.
    """
    product = db.session.get(Product, product_id) if product_id else None
    if product is None or not product.is_active:
        raise NotFoundError("Product not found or inactive")
    return product


def validate_product_data(data):
    """Validate an admin product payload.

    Returns a dict of cleaned fields. Raises ValidationError listing every
    problem found.
    """
    errors = {}
    title = (data.get("title") or "").strip() if isinstance(data.get("title"), str) else ""
    description = data.get("description")
    description = description.strip() if isinstance(description, str) else ""
    price = data.get("price")
    file_url = data.get("file_url") or data.get("fileUrl")
    thumbnail_url = data.get("thumbnail_url", data.get("thumbnailUrl"))
    is_active = data.get("is_active", data.get("isActive", True))

    if not title:
        errors["title"] = "Title is required."
    elif len(title) > 255:
        errors["title"] = "Title is too long."
    if not description:
        errors["description"] = "Description is required."
    # bool is an int subclass; reject it explicitly
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        errors["price"] = "Price must be a positive integer."
    if not isinstance(file_url, str) or not URL_RE.match(file_url):
        errors["file_url"] = "A valid http(s) file URL is required."
    if thumbnail_url is not None and (
        not isinstance(thumbnail_url, str) or not URL_RE.match(thumbnail_url)
    ):
        errors["thumbnail_url"] = "Thumbnail must be a valid http(s) URL."
    if not isinstance(is_active, bool):
        errors["is_active"] = "is_active must be true or false."

    if errors:
        raise ValidationError("Validation error", details=errors)

    return {
        "title": title,
        "description": description,
        "price": price,
        "file_url": file_url,
        "thumbnail_url": thumbnail_url,
        "is_active": is_active,
    }


def create_product(data):
    fields = validate_product_data(data)
    product = Product(**fields)
    db.session.add(product)
    commit_or_raise("creating product")
    logger.info(f"Product {product.id} created: {product.title} ({product.price})")
    return product
