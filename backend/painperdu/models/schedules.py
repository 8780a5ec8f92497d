from __future__ import annotations

from ..extensions import db
from ..time_utils import format_hhmm, to_iso_date, to_utc_z


SCHEDULE_TYPE_WORK = "work"
SCHEDULE_TYPE_LEAVE = "leave"
SCHEDULE_TYPE_SICK = "sick"


class Schedule(db.Model):
    """
    Planned working time (or absence) of a seller on a given day.

    A seller may hold several entries on the same day as long as their time
    ranges do not overlap. Entries without times (leave, sick days) occupy
    the whole day. Only active entries take part in the overlap check.
    """
    __tablename__ = "schedules"
    __table_args__ = (
        db.Index("ix_schedules_seller_date", "seller_id", "date"),
        db.Index("ix_schedules_date_active", "date", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)

    # work | leave | sick
    type = db.Column(db.String(16), nullable=False, default=SCHEDULE_TYPE_WORK)
    start_time = db.Column(db.Time, nullable=True)
    end_time = db.Column(db.Time, nullable=True)

    location = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    seller = db.relationship("User", foreign_keys=[seller_id], backref=db.backref("schedules", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    def __repr__(self) -> str:
        return f"<Schedule id={self.id} seller_id={self.seller_id} date={self.date} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "seller": self.seller.to_summary() if self.seller else None,
            "date": to_iso_date(self.date),
            "type": self.type,
            "start_time": format_hhmm(self.start_time),
            "end_time": format_hhmm(self.end_time),
            "location": self.location,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
