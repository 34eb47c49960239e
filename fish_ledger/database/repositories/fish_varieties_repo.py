from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from .customers_repo import DomainError


@dataclass
class FishVariety:
    fish_variety_id: int | None
    name: str


class FishVarietiesRepo:
    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def list_varieties(self) -> list[FishVariety]:
        rows = self.conn.execute(
            "SELECT fish_variety_id, name FROM fish_varieties ORDER BY name COLLATE NOCASE"
        ).fetchall()
        return [FishVariety(**dict(r)) for r in rows]

    def get(self, fish_variety_id: int) -> FishVariety | None:
        r = self.conn.execute(
            "SELECT fish_variety_id, name FROM fish_varieties WHERE fish_variety_id=?",
            (fish_variety_id,),
        ).fetchone()
        return FishVariety(**dict(r)) if r else None

    def names_by_id(self, ids) -> dict[int, str]:
        ids = list(ids)
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        rows = self.conn.execute(
            f"SELECT fish_variety_id, name FROM fish_varieties WHERE fish_variety_id IN ({placeholders})",
            ids,
        ).fetchall()
        return {int(r["fish_variety_id"]): r["name"] for r in rows}

    def create(self, name: str) -> int:
        name_n = (name or "").strip()
        if not name_n:
            raise DomainError("Variety name cannot be empty.")
        try:
            cur = self.conn.execute("INSERT INTO fish_varieties(name) VALUES (?)", (name_n,))
        except sqlite3.IntegrityError as e:
            raise DomainError(f"Variety '{name_n}' already exists.") from e
        self.conn.commit()
        return int(cur.lastrowid)

    def update(self, fish_variety_id: int, name: str) -> None:
        name_n = (name or "").strip()
        if not name_n:
            raise DomainError("Variety name cannot be empty.")
        try:
            self.conn.execute(
                "UPDATE fish_varieties SET name=? WHERE fish_variety_id=?",
                (name_n, fish_variety_id),
            )
        except sqlite3.IntegrityError as e:
            raise DomainError(f"Variety '{name_n}' already exists.") from e
        self.conn.commit()

    def delete(self, fish_variety_id: int) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM fish_varieties WHERE fish_variety_id=?", (fish_variety_id,))
        except sqlite3.IntegrityError as e:
            raise DomainError("Variety is used by sales, purchases or bills and cannot be deleted.") from e
