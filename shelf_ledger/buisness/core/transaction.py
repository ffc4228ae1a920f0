"""
Transaction helpers

atomic() wraps one logical operation in a single commit boundary. Nested
atomic() blocks join the outermost one, so a transfer that calls two ledger
primitives still commits (or rolls back) once.
"""

from contextlib import contextmanager
from shelf_ledger import db

_DEPTH_KEY = 'shelf_ledger.atomic_depth'


@contextmanager
def atomic():
    """
    Run the enclosed block inside one transaction.

    Yields:
        The active SQLAlchemy session
    """
    session = db.session()
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = depth


def in_atomic_block():
    return db.session().info.get(_DEPTH_KEY, 0) > 0
