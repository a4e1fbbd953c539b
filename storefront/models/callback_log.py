"""Callback log model (audit trail).

Every inbound gateway notification is written here before anything else
happens, including ones that fail signature verification. Rows are
append-only: nothing in the app updates or deletes them. This table is the
source of truth for replay and debugging; Transaction.callback_payload is a
denormalized copy of the payload that settled the transaction.
"""

from storefront.extensions import db


class CallbackLog(db.Model):
    __tablename__ = "callback_logs"

    SOURCE_CALLBACK = "callback"
    SOURCE_STATUS_CHECK = "status_check"

    # Integer autoincrement so rows sort by arrival order.
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    source = db.Column(
        db.String(20), nullable=False, default=SOURCE_CALLBACK
    )  # callback | status_check
    payload = db.Column(db.JSON, nullable=True)  # None if the body was not JSON
    raw_body = db.Column(db.Text, nullable=False, default="")
    signature_valid = db.Column(db.Boolean, nullable=False, default=False)
    received_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<CallbackLog {self.id} ({self.source})>"
