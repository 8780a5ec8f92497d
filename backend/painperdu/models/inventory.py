from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_iso_date, to_utc_z


INVENTORY_TYPE_OPENING = "opening"
INVENTORY_TYPE_CLOSING = "closing"


class Inventory(db.Model):
    """
    Daily stock count taken by a seller, at opening or at closing.

    LIFECYCLE:
    1. DRAFT (is_confirmed=False): items, notes, date and type editable
    2. CONFIRMED (is_confirmed=True): locked; only administrators may edit
       or delete. There is no transition back to DRAFT.

    total_value_cents is a snapshot computed from the items and the product
    prices at the time of the last create/update of the items; it is not
    refreshed when prices change.

    At most one opening and one closing count per seller per day, enforced by
    the unique constraint below (the service pre-check only produces a
    friendlier error first).
    """
    __tablename__ = "inventories"
    __table_args__ = (
        db.UniqueConstraint("date", "type", "seller_id", name="uq_inventories_seller_day_type"),
        db.Index("ix_inventories_seller_date", "seller_id", "date"),
        db.CheckConstraint("total_value_cents >= 0", name="total_value_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    date = db.Column(db.Date, nullable=False, index=True)

    # opening | closing
    type = db.Column(db.String(16), nullable=False, index=True)

    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    notes = db.Column(db.String(500), nullable=True)

    total_value_cents = db.Column(db.Integer, nullable=False, default=0)

    is_confirmed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    seller = db.relationship("User", foreign_keys=[seller_id], backref=db.backref("inventories", lazy=True))
    confirmed_by = db.relationship("User", foreign_keys=[confirmed_by_user_id])
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    items = db.relationship(
        "InventoryItem",
        back_populates="inventory",
        cascade="all, delete-orphan",
        order_by="InventoryItem.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} date={self.date} type={self.type} seller_id={self.seller_id}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "date": to_iso_date(self.date),
            "type": self.type,
            "seller_id": self.seller_id,
            "seller": self.seller.to_summary() if self.seller else None,
            "notes": self.notes,
            "total_value_cents": self.total_value_cents,
            "total_value": format_cents(self.total_value_cents),
            "is_confirmed": self.is_confirmed,
            "confirmed_at": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "confirmed_by_user_id": self.confirmed_by_user_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InventoryItem(db.Model):
    """One counted product on an inventory. A product appears at most once per inventory."""
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("inventory_id", "product_id", name="uq_inventory_items_inventory_product"),
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        db.CheckConstraint(
            "sold_quantity IS NULL OR (sold_quantity >= 0 AND sold_quantity <= quantity)",
            name="sold_within_quantity",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(
        db.Integer,
        db.ForeignKey("inventories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # None until sales are recorded for the line
    sold_quantity = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(200), nullable=True)

    inventory = db.relationship("Inventory", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "product_id": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "quantity": self.quantity,
            "sold_quantity": self.sold_quantity,
            "notes": self.notes,
        }
