from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Mapping, Optional

from ...database.repositories.stock_repo import StockRepo

_log = logging.getLogger(__name__)


def duplicate_sale_ids(rows: Iterable[Mapping]) -> list[int]:
    """
    Ids of the sale rows to remove so each (customer, variety) keeps one row.

    `rows` must already be newest first (created_at DESC, sale_id DESC); the
    first row seen for a key is kept, every later one is a duplicate.
    """
    seen: set[tuple[int, int]] = set()
    duplicates: list[int] = []
    for r in rows:
        key = (int(r["customer_id"]), int(r["fish_variety_id"]))
        if key in seen:
            duplicates.append(int(r["sale_id"]))
        else:
            seen.add(key)
    return duplicates


class DuplicateSaleReconciler:
    """Collapses repeated sale rows for one date down to the most recent one."""

    def __init__(self, conn: sqlite3.Connection, logger: Optional[logging.Logger] = None):
        self.conn = conn
        self.stock = StockRepo(conn)
        self._log = logger or _log

    def reconcile(self, sale_date: str) -> int:
        """Delete the duplicates for `sale_date`; returns how many went. Safe to re-run."""
        with self.conn:
            ids = duplicate_sale_ids(self.stock.sale_rows_for_reconcile(sale_date))
            removed = self.stock.delete_sales(ids)
        if removed:
            self._log.info("Removed %d duplicate sale rows for %s", removed, sale_date)
        return removed
