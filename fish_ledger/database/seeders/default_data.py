from ...constants import DEFAULT_EXPENSE_CATEGORIES

def seed(conn):
    # if no expense categories exist, create the standard set
    row = conn.execute("SELECT COUNT(*) AS n FROM expense_categories").fetchone()
    if row and row["n"] == 0:
        conn.executemany(
            "INSERT INTO expense_categories(name, icon, color) VALUES (:name, :icon, :color)",
            DEFAULT_EXPENSE_CATEGORIES,
        )
        conn.commit()
