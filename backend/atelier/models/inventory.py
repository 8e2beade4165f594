from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Supplier(db.Model):
    """
    Supplier that ships raw items (gold, gemstones, findings) to the workshop.

    Every delivery references exactly one supplier. A supplier with recorded
    deliveries cannot be deleted (see supplier_service.delete_supplier).
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    company = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(64), nullable=False, default="")
    email = db.Column(db.String(255), nullable=False, default="")
    address = db.Column(db.Text, nullable=False, default="")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "phone": self.phone}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "created_by_user_id": self.created_by_user_id,
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Delivery(db.Model):
    """
    A supplier shipment of a named stock item.

    Creating, editing or deleting a delivery moves the matching Stock balance
    in the same DB transaction (see delivery_service).
    """
    __tablename__ = "deliveries"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_deliveries_quantity_positive"),
        db.Index("ix_deliveries_item_name", "item_name"),
        db.Index("ix_deliveries_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # REQUIRED: every delivery comes from a supplier
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    delivery_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Relative URL under /uploads, or None
    invoice_image = db.Column(db.String(512), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("deliveries", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    def __repr__(self) -> str:
        return f"<Delivery id={self.id} item={self.item_name!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier": self.supplier.to_summary() if self.supplier else None,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "delivery_date": to_utc_z(self.delivery_date),
            "invoice_image": self.invoice_image,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Stock(db.Model):
    """
    Current balance per stock item. Single source of truth.

    INVARIANTS:
    - quantity >= 0 (DB check constraint backs the service-level check)
    - quantity == SUM(StockLog.change_amount) for this row

    Never write quantity directly; go through stock_service.apply_stock_change,
    which locks the row and appends the StockLog in the same transaction.
    """
    __tablename__ = "stock"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_name = db.Column(db.String(255), nullable=False, unique=True, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    updated_by = db.relationship("User", foreign_keys=[updated_by_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Stock id={self.id} item={self.item_name!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "last_updated": to_utc_z(self.last_updated),
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


STOCK_LOG_TYPES = ("delivery", "delivery_edit", "delivery_delete", "manual")


class StockLog(db.Model):
    """Append-only record of one Stock balance change."""
    __tablename__ = "stock_logs"
    __table_args__ = (
        db.Index("ix_stock_logs_stock_created", "stock_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stock_id = db.Column(db.Integer, db.ForeignKey("stock.id"), nullable=False, index=True)

    # Denormalized so the log reads on its own
    item_name = db.Column(db.String(255), nullable=False)

    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    change_amount = db.Column(db.Integer, nullable=False)

    type = db.Column(db.String(32), nullable=False, default="manual", index=True)

    # Set for delivery / delivery_edit; delivery_delete keeps the id of the removed row
    delivery_id = db.Column(db.Integer, nullable=True, index=True)

    note = db.Column(db.String(255), nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stock = db.relationship("Stock", backref=db.backref("logs", lazy=True))
    updated_by = db.relationship("User", foreign_keys=[updated_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_id": self.stock_id,
            "item_name": self.item_name,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "change_amount": self.change_amount,
            "type": self.type,
            "delivery_id": self.delivery_id,
            "note": self.note,
            "updated_by": self.updated_by.to_summary() if self.updated_by else None,
            "created_at": to_utc_z(self.created_at),
        }


class Jewellery(db.Model):
    """Finished piece held in the showroom or a locker."""
    __tablename__ = "jewellery"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_jewellery_quantity_non_negative"),
        db.Index("ix_jewellery_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(64), nullable=False, default="Other")

    # Grams
    weight = db.Column(db.Float, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text, nullable=False, default="")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Jewellery id={self.id} name={self.name!r}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "type": self.type}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "weight": self.weight,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "description": self.description,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LockerVerification(db.Model):
    """
    Locker audit entry for a jewellery piece.

    stage: "before" (piece placed in locker) or "after" (piece checked out).
    result: "matched", or "mismatch" with a required mismatch_reason.
    """
    __tablename__ = "locker_verifications"
    __table_args__ = (
        db.Index("ix_locker_verifications_stage", "stage"),
        db.Index("ix_locker_verifications_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    jewellery_id = db.Column(db.Integer, db.ForeignKey("jewellery.id"), nullable=False, index=True)
    locker_number = db.Column(db.String(64), nullable=False)

    stage = db.Column(db.String(16), nullable=False)

    verified_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    proof_image = db.Column(db.String(512), nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")

    result = db.Column(db.String(16), nullable=False, default="matched")
    mismatch_reason = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    jewellery = db.relationship("Jewellery", backref=db.backref("locker_verifications", lazy=True))
    verified_by = db.relationship("User", foreign_keys=[verified_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "jewellery_id": self.jewellery_id,
            "jewellery": self.jewellery.to_summary() if self.jewellery else None,
            "locker_number": self.locker_number,
            "stage": self.stage,
            "verified_by": self.verified_by.to_summary() if self.verified_by else None,
            "proof_image": self.proof_image,
            "notes": self.notes,
            "result": self.result,
            "mismatch_reason": self.mismatch_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
