from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional

from ...database.repositories.bills_repo import BillsRepo, Rate
from ...database.repositories.purchase_bills_repo import PurchaseBillsRepo

_log = logging.getLogger(__name__)

__all__ = ["Rate", "RateResolver"]


class RateResolver:
    """
    Last-used rates, for pre-filling a new bill.

    "Last" means the most recently created line item for the variety (its
    creation timestamp, not the bill date); equal timestamps go to the higher
    item id. Varieties never billed are left out, and a failed lookup is
    treated as "no history".
    """

    def __init__(self, conn: sqlite3.Connection):
        self.bills = BillsRepo(conn)
        self.purchase_bills = PurchaseBillsRepo(conn)

    def sales_rates(self, variety_ids: Iterable[int]) -> dict[int, Rate]:
        try:
            return self.bills.last_rates(variety_ids)
        except sqlite3.Error:
            _log.exception("Failed to load last sales rates")
            return {}

    def sales_rate(self, variety_id: int) -> Optional[Rate]:
        return self.sales_rates([variety_id]).get(variety_id)

    def purchase_rates(self, variety_ids: Iterable[int]) -> dict[int, float]:
        try:
            return self.purchase_bills.last_rates(variety_ids)
        except sqlite3.Error:
            _log.exception("Failed to load last purchase rates")
            return {}

    def purchase_rate(self, variety_id: int) -> Optional[float]:
        return self.purchase_rates([variety_id]).get(variety_id)
