# SQL schema for timelearn stores

SCHEMA_VERSION = "20170709A"

# Executed one statement at a time inside the creation transaction.
SCHEMA_STATEMENTS = (
    # Problems to learn
    """
    CREATE TABLE items (
        id INTEGER PRIMARY KEY,
        question TEXT UNIQUE NOT NULL,
        answer TEXT NOT NULL
    )
    """,
    # Current schedule, one row per item that has been reviewed
    """
    CREATE TABLE schedule (
        item_id INTEGER PRIMARY KEY,
        next_due REAL NOT NULL,
        interval REAL NOT NULL CHECK(interval > 0),
        FOREIGN KEY (item_id) REFERENCES items (id)
    )
    """,
    # Append-only grading log
    """
    CREATE TABLE log (
        timestamp REAL NOT NULL,
        item_id INTEGER NOT NULL,
        factor INTEGER NOT NULL CHECK(factor BETWEEN 1 AND 4),
        FOREIGN KEY (item_id) REFERENCES items (id)
    )
    """,
    """
    CREATE TABLE config (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE schema_version (
        version TEXT NOT NULL
    )
    """,
)

# Indexes for performance
INDEX_STATEMENTS = (
    "CREATE INDEX idx_schedule_next_due ON schedule (next_due)",
    "CREATE INDEX idx_log_item ON log (item_id)",
)
