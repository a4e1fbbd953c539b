"""Transaction model.

One purchase attempt. Lifecycle:
    PENDING  -> PAID     (gateway reports success)
    PENDING  -> FAILED   (gateway reports anything else)

price is captured at creation and never follows later product price
changes. gateway_reference_id is written once, right after the payment
link is created. The terminal status, payment method, callback payload
and download token are written together in one conditional update
(see callback_service.apply_payment_result).
"""

import uuid
from datetime import datetime, timezone

from storefront.extensions import db


class Transaction(db.Model):
    __tablename__ = "transactions"

    STATUS_PENDING = "PENDING"
    STATUS_PAID = "PAID"
    STATUS_FAILED = "FAILED"
    STATUSES = [STATUS_PENDING, STATUS_PAID, STATUS_FAILED]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    product_id = db.Column(
        db.String(36), db.ForeignKey("products.id"), nullable=False, index=True
    )
    buyer_email = db.Column(db.String(255), nullable=False)
    buyer_name = db.Column(db.String(255), nullable=True)
    price = db.Column(db.Integer, nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default=STATUS_PENDING
    )  # PENDING | PAID | FAILED
    payment_method = db.Column(db.String(100), nullable=True)
    gateway_reference_id = db.Column(
        db.String(255), nullable=True, index=True
    )  # OY! payment_link_id / invoice_id
    callback_payload = db.Column(db.JSON, nullable=True)  # copy of CallbackLog.payload
    download_token = db.Column(db.String(64), unique=True, nullable=True)
    download_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    product = db.relationship("Product", back_populates="transactions")

    @property
    def is_settled(self):
        return self.status != self.STATUS_PENDING

    @property
    def download_expired(self):
        """True when there is no download link or it has lapsed."""
        if self.download_expires_at is None:
            return True
        expires = self.download_expires_at
        # SQLite returns naive datetimes; Postgres returns aware ones.
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires

    def to_dict(self, include_product=True):
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "buyer_email": self.buyer_email,
            "buyer_name": self.buyer_name,
            "price": self.price,
            "status": self.status,
            "payment_method": self.payment_method,
            "gateway_reference_id": self.gateway_reference_id,
            "callback_payload": self.callback_payload,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_product and self.product is not None:
            data["product"] = self.product.to_dict()
        return data

    def __repr__(self):
        return f"<Transaction {self.id} ({self.status})>"
