"""Transaction scope shared by the workflow services."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or nothing.

    Ledger helpers only flush; the service operation that opens the block
    owns the commit.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
