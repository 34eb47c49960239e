from dataclasses import dataclass, fields
import sqlite3

from .customers_repo import DomainError


@dataclass
class Farmer:
    farmer_id: int | None
    name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    bank_account: str | None = None
    bank_name: str | None = None
    notes: str | None = None


_COLUMNS = [f.name for f in fields(Farmer)]
_SELECT = "SELECT " + ", ".join(_COLUMNS) + " FROM farmers"
_EDITABLE = [c for c in _COLUMNS if c != "farmer_id"]


def _clean(s: str | None) -> str | None:
    if s is None:
        return None
    return s.strip() or None


class FarmersRepo:
    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def list_farmers(self) -> list[Farmer]:
        rows = self.conn.execute(_SELECT + " ORDER BY name COLLATE NOCASE, farmer_id").fetchall()
        return [Farmer(**dict(r)) for r in rows]

    def get(self, farmer_id: int) -> Farmer | None:
        r = self.conn.execute(_SELECT + " WHERE farmer_id=?", (farmer_id,)).fetchone()
        return Farmer(**dict(r)) if r else None

    def create(self, farmer: Farmer) -> int:
        if not _clean(farmer.name):
            raise DomainError("Name cannot be empty.")
        cur = self.conn.execute(
            f"INSERT INTO farmers({', '.join(_EDITABLE)}) VALUES ({', '.join('?' for _ in _EDITABLE)})",
            [_clean(getattr(farmer, c)) for c in _EDITABLE],
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update(self, farmer: Farmer):
        if not _clean(farmer.name):
            raise DomainError("Name cannot be empty.")
        self.conn.execute(
            f"UPDATE farmers SET {', '.join(c + '=?' for c in _EDITABLE)} WHERE farmer_id=?",
            (*[_clean(getattr(farmer, c)) for c in _EDITABLE], farmer.farmer_id),
        )
        self.conn.commit()

    def delete(self, farmer_id: int):
        try:
            with self.conn:
                self.conn.execute("DELETE FROM farmers WHERE farmer_id=?", (farmer_id,))
        except sqlite3.IntegrityError as e:
            raise DomainError("Farmer has purchases or bills and cannot be deleted.") from e
