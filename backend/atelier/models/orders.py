from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


DESIGN_TYPES = ("ring", "necklace", "earring", "bracelet", "tiara")


class Design(db.Model):
    """AI-generated (or client-saved) design artifact a customer can order."""
    __tablename__ = "designs"
    __table_args__ = (
        db.Index("ix_designs_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    title = db.Column(db.String(255), nullable=False)
    prompt = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(16), nullable=False, default="ring")

    # Relative URL under /uploads, or an external URL for saved designs
    image_url = db.Column(db.String(1024), nullable=False)

    materials = db.Column(db.JSON, nullable=False, default=list)
    gemstones = db.Column(db.JSON, nullable=False, default=list)
    customizations = db.Column(db.JSON, nullable=False, default=dict)

    estimated_cost_cents = db.Column(db.Integer, nullable=True)
    is_ai_generated = db.Column(db.Boolean, nullable=False, default=True)
    # Which image backend produced it (stability / openai / pollinations)
    provider = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("designs", lazy=True))

    def __repr__(self) -> str:
        return f"<Design id={self.id} type={self.type} title={self.title!r}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "title": self.title, "image_url": self.image_url}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "prompt": self.prompt,
            "type": self.type,
            "image_url": self.image_url,
            "materials": self.materials or [],
            "gemstones": self.gemstones or [],
            "customizations": self.customizations or {},
            "estimated_cost_cents": self.estimated_cost_cents,
            "is_ai_generated": self.is_ai_generated,
            "provider": self.provider,
            "created_at": to_utc_z(self.created_at),
        }


# Order workflow statuses (manager workflow)
STATUS_PENDING = "Pending"
STATUS_APPROVED = "Approved"
STATUS_PROCESSING = "Processing"
STATUS_SHIPPED = "Shipped"
STATUS_DELIVERED = "Delivered"
STATUS_CANCELLED = "Cancelled"
STATUS_REJECTED = "Rejected"

ORDER_STATUSES = (
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_PROCESSING,
    STATUS_SHIPPED,
    STATUS_DELIVERED,
    STATUS_CANCELLED,
    STATUS_REJECTED,
)


class Order(db.Model):
    """
    Customer order for a design.

    STATUS: a flat enum (ORDER_STATUSES). Staff may set any status from any
    other; every write is recorded in OrderStatusHistory.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    design_id = db.Column(db.Integer, db.ForeignKey("designs.id"), nullable=False)

    # Human-readable number (e.g., "ORD-829103")
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)

    total_price_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING)

    # Shipping address
    shipping_address_line = db.Column(db.String(255), nullable=False, default="N/A")
    shipping_city = db.Column(db.String(128), nullable=False)
    shipping_country = db.Column(db.String(128), nullable=False)

    # Custom details
    size = db.Column(db.String(64), nullable=False, default="Standard")
    metal_type = db.Column(db.String(64), nullable=False, default="22K Gold")
    notes = db.Column(db.Text, nullable=False, default="")

    payment_method = db.Column(db.String(32), nullable=False, default="Card")
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Internal manager fields
    manager_comment = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    design = db.relationship("Design", backref=db.backref("orders", lazy=True))

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "customer": self.user.to_summary() if self.user else None,
            "design_id": self.design_id,
            "design": self.design.to_summary() if self.design else None,
            "total_price_cents": self.total_price_cents,
            "status": self.status,
            "shipping_address": {
                "address_line": self.shipping_address_line,
                "city": self.shipping_city,
                "country": self.shipping_country,
            },
            "custom_details": {
                "size": self.size,
                "metal_type": self.metal_type,
                "notes": self.notes,
            },
            "payment_method": self.payment_method,
            "is_paid": self.is_paid,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "manager_comment": self.manager_comment,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderStatusHistory(db.Model):
    """Append-only trail of order status writes (including creation)."""
    __tablename__ = "order_status_history"
    __table_args__ = (
        db.Index("ix_order_status_history_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False)
    comment = db.Column(db.Text, nullable=False, default="")
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("status_history", lazy=True))
    updated_by = db.relationship("User", foreign_keys=[updated_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "status": self.status,
            "comment": self.comment,
            "updated_by": self.updated_by.to_summary() if self.updated_by else None,
            "created_at": to_utc_z(self.created_at),
        }
