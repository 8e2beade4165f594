# Overview: Row locking and retry for stock-moving transactions.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Stock


logger = logging.getLogger(__name__)

STOCK_WRITE_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 0.05


def locked_stock(stock_id: int) -> Stock:
    """
    Reload a Stock row with SELECT ... FOR UPDATE.

    populate_existing() discards whatever this session cached, so the
    balance is the one the lock protects. SQLite has no row locks and
    serialises writers on the whole file instead.
    """
    return (
        db.session.query(Stock)
        .filter(Stock.id == stock_id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def run_with_retry(func):
    """
    Run a stock write, retrying on lock failures and version conflicts.

    The session is rolled back before every retry, so func must redo its
    own reads.
    """
    for attempt in range(1, STOCK_WRITE_ATTEMPTS + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt == STOCK_WRITE_ATTEMPTS:
                raise
            logger.warning("Stock write conflict (%s), retry %d", type(exc).__name__, attempt)
            time.sleep(RETRY_DELAY_SECONDS * attempt)
