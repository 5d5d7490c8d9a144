"""Create every table on the configured database without running migrations."""

import sys

from comu_relay.db.session import create_tables, drop_tables, engine


def init_db(reset: bool = False) -> None:
    """Initialize the database by creating all tables.

    With ``reset`` the existing tables are dropped first.
    """
    if reset:
        drop_tables()
    create_tables()


if __name__ == "__main__":
    init_db(reset="--reset" in sys.argv[1:])
    print(f"Database initialized at {engine.url!r}.")
