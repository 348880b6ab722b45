from __future__ import annotations

from sqlalchemy import func

from replenish.errors import ConflictError, NotFoundError, ValidationError
from replenish.extensions import db
from replenish.models import Branch
from replenish.services.concurrency import run_with_retry


def resolve_branch(identifier) -> Branch:
    """
    Translate any accepted branch reference to the canonical Branch row.

    Accepts the integer id, a digit string, the branch name (case-insensitive)
    or its code. Every API boundary passes branch input through here so only
    Branch.id is ever stored.
    """
    if identifier is None or isinstance(identifier, bool):
        raise ValidationError("Branch is required")

    if isinstance(identifier, int):
        branch = db.session.get(Branch, identifier)
        if not branch:
            raise NotFoundError(f"Branch {identifier} not found")
        return branch

    if not isinstance(identifier, str) or not identifier.strip():
        raise ValidationError("Branch is required")

    value = identifier.strip()
    if value.isdigit():
        branch = db.session.get(Branch, int(value))
        if branch:
            return branch

    branch = (
        db.session.query(Branch)
        .filter(func.lower(Branch.name) == value.lower())
        .first()
    )
    if branch:
        return branch

    branch = db.session.query(Branch).filter(Branch.code == value.upper()).first()
    if branch:
        return branch

    raise NotFoundError(f"Branch {value!r} not found")


def create_branch(
    name: str,
    code: str | None = None,
    *,
    address: str | None = None,
    phone: str | None = None,
) -> Branch:
    def _op():
        if not name or not name.strip():
            raise ValidationError("Branch name is required")

        existing = (
            db.session.query(Branch)
            .filter(func.lower(Branch.name) == name.strip().lower())
            .first()
        )
        if existing:
            raise ConflictError(f"Branch {name!r} already exists")

        branch = Branch(
            name=name.strip(),
            code=code.strip().upper() if code else None,
            address=address,
            phone=phone,
        )
        db.session.add(branch)
        db.session.commit()
        return branch

    return run_with_retry(_op)


def get_branch(branch_id: int) -> Branch | None:
    return db.session.get(Branch, branch_id)


def list_branches() -> list[Branch]:
    return db.session.query(Branch).order_by(Branch.name.asc()).all()
