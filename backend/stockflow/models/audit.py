from __future__ import annotations

from ..extensions import db
from stockflow.time_utils import to_utc_z


class AuditLog(db.Model):
    """
    Append-only audit trail.

    - Rows are only ever inserted; there is no update or delete path.
    - changes holds a JSON before/after snapshot of the affected entity.
    - entity_id is stored as a string so any entity key fits.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        db.Index("ix_audit_logs_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    action = db.Column(db.String(16), nullable=False, index=True)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.String(64), nullable=False)
    changes = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User")

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} {self.action} {self.entity_type}:{self.entity_id}>"

    def to_dict(self) -> dict:
        user = self.user
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user": {
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
            } if user else None,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "changes": self.changes,
            "created_at": to_utc_z(self.created_at),
        }
