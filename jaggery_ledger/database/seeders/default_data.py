from ...constants import DEFAULT_BAG_KG, SETTING_DEFAULT_BAG_KG

_DEFAULT_USERS = (
    ("admin", "Administrator", "admin@example.com", "admin"),
    ("manager", "Manager", "manager@example.com", "manager"),
    ("dispatch", "Dispatch Officer", "dispatch@example.com", "dispatch"),
)


def seed(conn):
    """Idempotent: only fills what is missing. Caller commits."""
    conn.execute(
        "INSERT OR IGNORE INTO settings(setting_key, setting_value) VALUES (?, ?)",
        (SETTING_DEFAULT_BAG_KG, repr(float(DEFAULT_BAG_KG))),
    )

    # if no users exist, create one per role
    row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
    if row and row["n"] == 0:
        conn.executemany(
            """
            INSERT INTO users(username, full_name, email, role, is_active)
            VALUES (?, ?, ?, ?, 1)
            """,
            _DEFAULT_USERS,
        )
