"""Product model.

A purchasable digital item. price is an integer amount in the smallest
currency unit (rupiah have no minor unit, so 50000 means Rp 50.000).
The checkout workflow only ever reads products.
"""

import uuid

from storefront.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    price = db.Column(db.Integer, nullable=False)
    file_url = db.Column(db.String(2048), nullable=False)  # delivered after payment
    thumbnail_url = db.Column(db.String(2048), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    transactions = db.relationship(
        "Transaction", back_populates="product", lazy="dynamic"
    )

    def to_dict(self, include_file=False):
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "thumbnail_url": self.thumbnail_url,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        # The file URL is the thing being sold; only admins see it.
        if include_file:
            data["file_url"] = self.file_url
        return data

    def __repr__(self):
        return f"<Product {self.title} ({self.price})>"
