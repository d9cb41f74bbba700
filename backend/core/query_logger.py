# backend/core/query_logger.py

import logging
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine

from core.config import get_settings

logger = logging.getLogger("sqlalchemy.engine")
query_logger = logging.getLogger("query_performance")


def setup_query_logging(engine: Engine) -> None:
    """
    Attach connection and query-timing listeners to an engine.

    SQLite connections always get foreign key enforcement; slow query
    warnings are only wired up in development or when debug is on.

    Args:
        engine: SQLAlchemy engine instance
    """
    settings = get_settings()

    if engine.url.get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def enable_sqlite_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

    if not (settings.is_development or settings.debug):
        return

    threshold = settings.slow_query_threshold_seconds

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())
        if settings.log_sql_queries:
            logger.debug("Start Query: %s", statement)

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total_time = time.time() - conn.info["query_start_time"].pop(-1)
        if total_time > threshold:
            query_logger.warning(f"SLOW QUERY ({total_time:.3f}s): {statement[:200]}...")
        if settings.log_sql_queries:
            logger.debug("Query Complete in %.3fs", total_time)
