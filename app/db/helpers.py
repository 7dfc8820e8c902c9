"""Database session helpers."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


def commit_and_refresh(db: Session, *instances) -> None:
    """
    Commit the transaction and refresh each given instance.
    Skips None so optional rows can be passed straight through.
    """
    db.commit()
    for obj in instances:
        if obj is not None:
            db.refresh(obj)


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    Return True only if the IntegrityError is a unique-constraint violation.

    Callers use insert-first idempotency (ProcessedMessage, DispatchLog) and must
    re-raise anything else to avoid hiding real DB bugs.
    """
    orig = exc.orig
    if orig is None:
        return False
    # Postgres: SQLSTATE 23505 = unique_violation
    if getattr(orig, "pgcode", None) == "23505":
        return True
    # SQLite: check error message
    err_msg = str(orig).lower()
    return "unique constraint" in err_msg
