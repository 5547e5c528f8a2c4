import asyncio
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import psycopg2
import psycopg2.errors
import psycopg2.extras
import psycopg2.pool

from . import sql_queries
from .config import config
from .errors import DuplicatePasteId, StorageError, TransactionError
from .log import get_logger

DB_CONFIG = {
    "host": config["database"]["host"],
    "port": config["database"]["port"],
    "database": config["database"]["database"],
    "user": config["database"]["user"],
    "password": config["database"]["password"],
}
LOGGER = get_logger(__name__)


def run_query(con, query, args=None):
    with con.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
        cur.execute(query, args)
        rows = cur.fetchall() if cur.description is not None else []
        return rows, cur.rowcount


class Database:
    """
    Paste metadata in Postgres.

    psycopg2 is blocking, so every call runs in a dedicated thread pool and
    the event loop only awaits the result.
    """

    def __init__(
        self,
        db_config=DB_CONFIG,
        pool_size=config["database"]["pool_size"],
        connection_pool=None,
        thread_pool=None,
    ):
        self.db_config = db_config
        self.pool_size = pool_size
        self.connection_pool = connection_pool
        self.thread_pool = thread_pool

    def open(self):
        if self.connection_pool is None:
            LOGGER.info("Creating database connection pool")
            self.connection_pool = psycopg2.pool.ThreadedConnectionPool(
                1, self.pool_size, **self.db_config
            )
        if self.thread_pool is None:
            LOGGER.info("Creating database thread pool")
            self.thread_pool = ThreadPoolExecutor(
                max_workers=self.pool_size, thread_name_prefix="database"
            )

    def close(self):
        if self.thread_pool is not None:
            LOGGER.info("Closing database thread pool")
            self.thread_pool.shutdown()
            self.thread_pool = None
        if self.connection_pool is not None:
            LOGGER.info("Closing database connection pool")
            self.connection_pool.closeall()
            self.connection_pool = None

    async def run(self, func, *args, **kwargs):
        return await asyncio.get_running_loop().run_in_executor(
            self.thread_pool, partial(func, *args, **kwargs)
        )

    def execute_sync(self, query, args=None):
        con = self.connection_pool.getconn()
        try:
            result = run_query(con, query, args)
            con.commit()
            return result
        except Exception:
            con.rollback()
            raise
        finally:
            self.connection_pool.putconn(con)

    async def execute(self, query, args=None):
        try:
            return await self.run(self.execute_sync, query, args)
        except psycopg2.Error as err:
            LOGGER.error(f"{type(err).__name__} when running query: {err}")
            raise StorageError("Metadata store query failed", error=err)

    async def begin(self):
        try:
            con = await self.run(self.connection_pool.getconn)
        except psycopg2.Error as err:
            LOGGER.error(f"Failed to start transaction: {err}")
            raise TransactionError("Failed to start transaction", error=err)
        return Transaction(self, con)

    async def get_paste(self, paste_id):
        rows, _ = await self.execute(sql_queries.GET_PASTE, (paste_id,))
        if rows:
            return rows[0]

    async def search_pastes(self, tags, limit, offset):
        rows, _ = await self.execute(
            sql_queries.SEARCH_PASTES, (list(tags), limit, offset)
        )
        return rows

    async def get_pastes_by_owner(self, user_id):
        rows, _ = await self.execute(
            sql_queries.GET_PASTES_BY_OWNER, (user_id,)
        )
        return rows

    async def update_paste(self, paste_id, title, tags):
        _, rowcount = await self.execute(
            sql_queries.UPDATE_PASTE, (title, list(tags), paste_id)
        )
        return rowcount

    async def save_views(self, paste_id, views, last_seen):
        _, rowcount = await self.execute(
            sql_queries.SAVE_VIEWS, (views, last_seen, paste_id)
        )
        return rowcount

    def setup_database_objects(self):
        with psycopg2.connect(**self.db_config) as con:
            with con.cursor() as cur:
                cur.execute(sql_queries.CREATE_TABLE_PASTEBIN)
                cur.execute(sql_queries.CREATE_INDEX_PASTEBIN_TAGS)
                cur.execute(sql_queries.CREATE_INDEX_PASTEBIN_DATE)
                cur.execute(sql_queries.CREATE_INDEX_PASTEBIN_USERID)
        con.close()


class Transaction:
    """
    One metadata store transaction holding a pooled connection until it is
    committed or rolled back.

    Used as an async context manager, the transaction is rolled back on the
    way out unless it was committed, whatever interrupted the block.
    """

    def __init__(self, database, con):
        self.database = database
        self.con = con
        self.done = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.rollback()

    async def execute(self, query, args=None):
        try:
            return await self.database.run(run_query, self.con, query, args)
        except psycopg2.errors.UniqueViolation as err:
            raise DuplicatePasteId("Paste ID already exists", error=err)
        except psycopg2.Error as err:
            LOGGER.error(f"{type(err).__name__} in transaction: {err}")
            raise TransactionError("Transaction query failed", error=err)

    async def insert_paste(self, paste):
        await self.execute(sql_queries.INSERT_PASTE, paste.to_row())

    async def delete_paste(self, paste_id):
        rows, _ = await self.execute(sql_queries.DELETE_PASTE, (paste_id,))
        if rows:
            return rows[0]

    async def commit(self):
        await self.finish(self.con.commit, "commit")

    async def rollback(self):
        await self.finish(self.con.rollback, "rollback")

    async def finish(self, func, action):
        if self.done:
            return
        self.done = True
        try:
            await self.database.run(func)
        except psycopg2.Error as err:
            LOGGER.error(f"Failed to {action} transaction: {err}")
            self.database.connection_pool.putconn(self.con, close=True)
            raise TransactionError(
                f"Failed to {action} transaction", error=err
            )
        self.database.connection_pool.putconn(self.con)
