from typing import Any, Dict, Sequence

from sqlalchemy import Table
from sqlalchemy.dialects import mysql, postgresql, sqlite


def insert_or_increment(dialect_name: str, table: Table, values: Dict[str, Any], *, keys: Sequence[str], column: str):
    """Build a single INSERT that adds ``values[column]`` onto an existing row on key conflict.

    The increment happens inside the database, so concurrent callers never lose an update.
    """
    target = table.c[column]
    if dialect_name in ("sqlite", "postgresql"):
        module = sqlite if dialect_name == "sqlite" else postgresql
        stmt = module.insert(table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=list(keys),
            set_={column: target + stmt.excluded[column], "updated_at": stmt.excluded.updated_at},
        )
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql.insert(table).values(**values)
        return stmt.on_duplicate_key_update(
            {column: target + stmt.inserted[column], "updated_at": stmt.inserted.updated_at}
        )
    raise NotImplementedError(f"atomic upsert not supported for dialect {dialect_name!r}")
