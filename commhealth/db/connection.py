import sqlite3
from contextlib import contextmanager
from typing import Iterator, Tuple


# Imports and submissions write while analytics reads: WAL avoids reader/writer blocking.
_PRAGMAS: Tuple[str, ...] = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
)

DEFAULT_TIMEOUT = 60.0


def connect(db_path: str, timeout: float = DEFAULT_TIMEOUT) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, timeout=timeout)
    for pragma in _PRAGMAS:
        conn.execute(pragma)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_session(db_path: str, timeout: float = DEFAULT_TIMEOUT) -> Iterator[sqlite3.Connection]:
    # Commit on success, roll back on any error, always close.
    conn = connect(db_path, timeout=timeout)
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
