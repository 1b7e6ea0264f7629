"""Portable SQL helpers for case-insensitive text matching.

SQLite's built-in ``lower()`` only folds ASCII letters. ``unicode_lower``
compiles to ``lower()`` on other backends and to a Python-backed function on
SQLite, registered on every new SQLite connection, so SQL matches agree with
``str.lower()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import Pool
from sqlalchemy.sql.functions import FunctionElement
from sqlalchemy.types import String

if TYPE_CHECKING:
    from sqlalchemy.sql.compiler import SQLCompiler

SQLITE_LOWER_FUNCTION = "taskboard_lower"


class unicode_lower(FunctionElement):  # noqa: N801
    """``lower(text)`` with Unicode case folding on every backend."""

    type = String()
    inherit_cache = True


@compiles(unicode_lower)
def _compile_unicode_lower(element: unicode_lower, compiler: SQLCompiler, **kw: Any) -> str:
    return f"lower({compiler.process(element.clauses, **kw)})"


@compiles(unicode_lower, "sqlite")
def _compile_unicode_lower_sqlite(
    element: unicode_lower,
    compiler: SQLCompiler,
    **kw: Any,
) -> str:
    return f"{SQLITE_LOWER_FUNCTION}({compiler.process(element.clauses, **kw)})"


def _python_lower(value: object) -> str | None:
    if value is None:
        return None
    return str(value).lower()


@event.listens_for(Pool, "connect")
def _register_sqlite_functions(dbapi_connection: Any, _connection_record: object) -> None:
    # Both sqlite3 and the aiosqlite adapter expose create_function; other drivers do not.
    create_function = getattr(dbapi_connection, "create_function", None)
    if create_function is None:
        return
    create_function(SQLITE_LOWER_FUNCTION, 1, _python_lower)
