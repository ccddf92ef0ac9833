"""
Unit-of-work helper: one trigger, one transaction.
"""

import logging
from contextlib import contextmanager

from tippr import db

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(description):
    """
    Commit the session when the block succeeds, roll everything back when
    it raises. The exception is re-raised unchanged.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Rolled back '{description}': {e}")
        raise
