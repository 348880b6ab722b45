from __future__ import annotations

from ..extensions import db
from replenish.time_utils import to_utc_z


class Branch(db.Model):
    """
    A physical branch holding stock.

    CANONICAL KEY: Branch.id is the only identifier stored on inventory,
    ledger, request, transfer and purchase order rows. Names and codes are
    accepted at the API boundary and translated via branch_service.resolve_branch.
    """
    __tablename__ = "branches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "address": self.address,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }
