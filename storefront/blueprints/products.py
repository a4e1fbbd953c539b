"""Products blueprint — /api/products

Route Map:
  GET  /api/products        — active products (public)
  GET  /api/products/<id>   — one active product (public)
  POST /api/products        — create product (admin)
"""

from flask import Blueprint, jsonify, request

from storefront.decorators import admin_required
from storefront.errors import ValidationError
from storefront.services import product_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.route("", methods=["GET"])
def list_products():
    products = product_service.list_active_products()
    return jsonify([p.to_dict() for p in products])


@products_bp.route("/<product_id>", methods=["GET"])
def get_product(product_id):
    product = product_service.get_purchasable_product(product_id)
    return jsonify(product.to_dict())


@products_bp.route("", methods=["POST"])
@admin_required
def create_product():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    product = product_service.create_product(data)
    return jsonify(product.to_dict(include_file=True)), 201
