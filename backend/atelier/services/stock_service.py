# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

"""
Stock Ledger Service

The Stock table is the single source of truth for item balances. Every
balance change, whether from a delivery, a delivery edit or delete, or a
manual adjustment, goes through apply_stock_change(), which:

1. Gets (or creates) the Stock row for the item
2. Locks it (SELECT ... FOR UPDATE) and re-reads the current quantity
3. Rejects changes that would take the balance below zero
4. Writes the new balance
5. Appends a StockLog with before / after / change

all inside the caller's transaction. The caller commits once, so the
business record (e.g. the Delivery) and its stock effect land together.

INVARIANTS:
- Stock.quantity >= 0 (also a DB check constraint)
- Stock.quantity == SUM(StockLog.change_amount) for the row
  (verified by `flask stock check`)
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Stock, StockLog
from ..models.inventory import STOCK_LOG_TYPES
from ..time_utils import utcnow
from .concurrency import locked_stock, run_with_retry


class StockNotFoundError(Exception):
    """Raised when a stock item is not found."""
    pass


class StockValidationError(Exception):
    """Raised when an adjustment request is malformed."""
    pass


class NegativeStockError(Exception):
    """Raised when a change would take a balance below zero."""

    def __init__(self, item_name: str, available: int, change_amount: int):
        self.item_name = item_name
        self.available = available
        self.change_amount = change_amount
        super().__init__("Stock cannot be negative")


def normalize_item_name(item_name: str | None) -> str:
    return " ".join(str(item_name or "").split())


def _get_or_create_stock(item_name: str) -> Stock:
    stock = db.session.query(Stock).filter_by(item_name=item_name).first()
    if stock:
        return stock

    # Savepoint so a concurrent insert of the same item doesn't poison the
    # outer transaction.
    try:
        with db.session.begin_nested():
            stock = Stock(item_name=item_name, quantity=0)
            db.session.add(stock)
    except IntegrityError:
        stock = db.session.query(Stock).filter_by(item_name=item_name).one()
    return stock


def apply_stock_change(
    *,
    change_amount: int,
    log_type: str,
    item_name: str | None = None,
    stock_id: int | None = None,
    user_id: int | None = None,
    delivery_id: int | None = None,
    note: str | None = None,
) -> tuple[Stock, StockLog]:
    """
    Move one item's balance by change_amount and append the ledger row.

    Identify the item by stock_id (must exist) or item_name (created at
    zero if missing). Does NOT commit.

    Raises:
        StockNotFoundError: stock_id given but missing
        NegativeStockError: resulting balance would be < 0
    """
    if log_type not in STOCK_LOG_TYPES:
        raise StockValidationError(f"Unknown stock log type: {log_type}")

    if stock_id is not None:
        stock = db.session.get(Stock, stock_id)
        if not stock:
            raise StockNotFoundError("Stock item not found")
    else:
        item_name = normalize_item_name(item_name)
        if not item_name:
            raise StockValidationError("item_name is required")
        stock = _get_or_create_stock(item_name)

    stock = locked_stock(stock.id)

    before = stock.quantity
    after = before + change_amount
    if after < 0:
        raise NegativeStockError(stock.item_name, before, change_amount)

    stock.quantity = after
    stock.last_updated = utcnow()
    stock.updated_by_user_id = user_id

    log = StockLog(
        stock_id=stock.id,
        item_name=stock.item_name,
        quantity_before=before,
        quantity_after=after,
        change_amount=change_amount,
        type=log_type,
        delivery_id=delivery_id,
        note=note,
        updated_by_user_id=user_id,
    )
    db.session.add(log)
    db.session.flush()
    return stock, log


def parse_change_amount(value) -> int:
    """Accept ints and integer strings; reject bools, floats with fractions, and zero."""
    if isinstance(value, bool) or value is None:
        raise StockValidationError("change_amount must be a non-zero integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise StockValidationError("change_amount must be a non-zero integer")
        value = int(value)
    try:
        amount = int(value)
    except (TypeError, ValueError):
        raise StockValidationError("change_amount must be a non-zero integer")
    if amount == 0:
        raise StockValidationError("change_amount must be a non-zero integer")
    return amount


def adjust_stock(
    *,
    change_amount,
    user_id: int | None,
    stock_id: int | None = None,
    item_name: str | None = None,
    note: str | None = None,
) -> tuple[Stock, StockLog]:
    """
    Manual adjustment by id or by existing item name. Commits.

    Raises:
        StockValidationError: bad amount / missing identifier
        StockNotFoundError: unknown stock id or item name
        NegativeStockError: result would be < 0
    """
    amount = parse_change_amount(change_amount)

    if stock_id is None:
        item_name = normalize_item_name(item_name)
        if not item_name:
            raise StockValidationError("item_name is required")
        existing = db.session.query(Stock).filter_by(item_name=item_name).first()
        if not existing:
            raise StockNotFoundError("Stock item not found")
        stock_id = existing.id

    def _op():
        try:
            stock, log = apply_stock_change(
                stock_id=stock_id,
                change_amount=amount,
                log_type="manual",
                user_id=user_id,
                note=str(note or "").strip() or None,
            )
        except (StockNotFoundError, NegativeStockError):
            db.session.rollback()
            raise
        db.session.commit()
        return stock, log

    return run_with_retry(_op)


def list_stock() -> list[Stock]:
    return db.session.query(Stock).order_by(Stock.item_name.asc()).all()


def get_stock(stock_id: int) -> Stock:
    stock = db.session.get(Stock, stock_id)
    if not stock:
        raise StockNotFoundError("Stock item not found")
    return stock


def list_logs(*, limit: int = 200, stock_id: int | None = None) -> list[StockLog]:
    query = db.session.query(StockLog)
    if stock_id is not None:
        query = query.filter(StockLog.stock_id == stock_id)
    return (
        query.order_by(StockLog.created_at.desc(), StockLog.id.desc())
        .limit(limit)
        .all()
    )


def list_low_stock(threshold: int) -> list[Stock]:
    return (
        db.session.query(Stock)
        .filter(Stock.quantity < threshold)
        .order_by(Stock.quantity.asc(), Stock.item_name.asc())
        .all()
    )


def find_ledger_mismatches() -> list[dict]:
    """
    Compare every Stock balance against the sum of its log deltas.

    Returns one dict per mismatching row: {id, item_name, quantity, ledger_total}.
    """
    totals = dict(
        db.session.query(StockLog.stock_id, func.coalesce(func.sum(StockLog.change_amount), 0))
        .group_by(StockLog.stock_id)
        .all()
    )
    mismatches = []
    for stock in db.session.query(Stock).order_by(Stock.id.asc()).all():
        ledger_total = int(totals.get(stock.id, 0))
        if stock.quantity != ledger_total:
            mismatches.append({
                "id": stock.id,
                "item_name": stock.item_name,
                "quantity": stock.quantity,
                "ledger_total": ledger_total,
            })
    return mismatches
