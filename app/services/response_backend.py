"""Access to the shared ``responses`` table.

Two backends satisfy the same contract: the hosted Supabase project (PostgREST
for rows, a realtime channel for change notifications) and a plain SQLAlchemy
database where notifications are fanned out in-process after each commit.
"""

import itertools
import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool
from supabase import AsyncClient

from ..config import Settings
from ..database import (
    build_engine,
    build_session_factory,
    create_supabase,
    init_db,
    session_scope,
)
from ..models.response import PotluckResponse
from ..utils.constants import AppConstants

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]


class ResponseBackend:
    """Row-level operations and change feed for the responses table"""

    kind = "abstract"

    async def select_all(self, order_by: Optional[str] = None) -> Any:
        raise NotImplementedError

    async def insert(self, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def update(
        self, response_id: str, values: Dict[str, Any], name: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def delete(self, response_id: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def subscribe(self, callback: ChangeCallback) -> Any:
        raise NotImplementedError

    async def unsubscribe(self, handle: Any) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class SupabaseBackend(ResponseBackend):
    kind = "supabase"

    def __init__(
        self,
        client: AsyncClient,
        table: str = "responses",
        schema: str = "public",
    ):
        self.client = client
        self.table = table
        self.schema = schema

    @classmethod
    async def connect(cls, settings: Settings) -> "SupabaseBackend":
        client = await create_supabase(settings)
        logger.info(f"Connected to Supabase table '{settings.table_name}'")
        return cls(client, table=settings.table_name, schema=settings.realtime_schema)

    async def select_all(self, order_by: Optional[str] = None) -> Any:
        query = self.client.table(self.table).select("*")
        if order_by:
            query = query.order(order_by)
        result = await query.execute()
        return result.data

    async def insert(self, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        result = await self.client.table(self.table).insert(values).execute()
        return result.data or []

    async def update(
        self, response_id: str, values: Dict[str, Any], name: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query = self.client.table(self.table).update(values).eq("id", response_id)
        if name is not None:
            query = query.eq("name", name)
        result = await query.execute()
        return result.data or []

    async def delete(self, response_id: str) -> List[Dict[str, Any]]:
        result = (
            await self.client.table(self.table).delete().eq("id", response_id).execute()
        )
        return result.data or []

    async def subscribe(self, callback: ChangeCallback) -> Any:
        # One channel per subscriber
        topic = f"{AppConstants.REALTIME_CHANNEL_PREFIX}-{uuid.uuid4().hex[:12]}"
        channel = self.client.channel(topic)
        channel.on_postgres_changes(
            "*",
            schema=self.schema,
            table=self.table,
            callback=lambda payload: callback(),
        )
        await channel.subscribe()
        logger.debug(f"Realtime channel {topic} subscribed")
        return channel

    async def unsubscribe(self, handle: Any) -> None:
        await self.client.remove_channel(handle)

    async def close(self) -> None:
        await self.client.remove_all_channels()


class SqlResponseBackend(ResponseBackend):
    kind = "sql"

    COLUMNS = ("name", "attending", "category", "dish")

    def __init__(self, session_factory: sessionmaker, engine=None):
        self.session_factory = session_factory
        self.engine = engine
        self._listeners: Dict[int, ChangeCallback] = {}
        self._handles = itertools.count(1)
        # Sessions may share one connection (in-memory SQLite), so never overlap them
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "SqlResponseBackend":
        engine = build_engine(database_url)
        init_db(engine)
        logger.info(f"Using local responses table at {engine.url!r}")
        return cls(build_session_factory(engine), engine=engine)

    async def select_all(self, order_by: Optional[str] = None) -> Any:
        return await run_in_threadpool(self._select_all, order_by)

    async def insert(self, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        rows = await run_in_threadpool(self._insert, values)
        self._notify()
        return rows

    async def update(
        self, response_id: str, values: Dict[str, Any], name: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        rows = await run_in_threadpool(self._update, response_id, values, name)
        if rows:
            self._notify()
        return rows

    async def delete(self, response_id: str) -> List[Dict[str, Any]]:
        rows = await run_in_threadpool(self._delete, response_id)
        if rows:
            self._notify()
        return rows

    # Session work runs in a worker thread; listeners are notified on the loop

    def _select_all(self, order_by: Optional[str]) -> List[Dict[str, Any]]:
        with self._lock, session_scope(self.session_factory) as db:
            query = db.query(PotluckResponse)
            if order_by:
                column = getattr(PotluckResponse, order_by, None)
                if column is None:
                    raise ValueError(f"Unknown column to order by: {order_by}")
                query = query.order_by(column.asc())
            return [response.to_row() for response in query.all()]

    def _insert(self, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock, session_scope(self.session_factory) as db:
            response = PotluckResponse(**self._columns(values))
            db.add(response)
            db.flush()
            return [response.to_row()]

    def _update(
        self, response_id: str, values: Dict[str, Any], name: Optional[str]
    ) -> List[Dict[str, Any]]:
        with self._lock, session_scope(self.session_factory) as db:
            query = db.query(PotluckResponse).filter(PotluckResponse.id == response_id)
            if name is not None:
                query = query.filter(PotluckResponse.name == name)

            response = query.first()
            if response is None:
                return []

            for field, value in self._columns(values).items():
                setattr(response, field, value)
            db.flush()
            return [response.to_row()]

    def _delete(self, response_id: str) -> List[Dict[str, Any]]:
        with self._lock, session_scope(self.session_factory) as db:
            response = (
                db.query(PotluckResponse)
                .filter(PotluckResponse.id == response_id)
                .first()
            )
            if response is None:
                return []
            row = response.to_row()
            db.delete(response)
            return [row]

    async def subscribe(self, callback: ChangeCallback) -> int:
        handle = next(self._handles)
        self._listeners[handle] = callback
        return handle

    async def unsubscribe(self, handle: int) -> None:
        self._listeners.pop(handle, None)

    async def close(self) -> None:
        self._listeners.clear()
        if self.engine is not None:
            self.engine.dispose()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _columns(self, values: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(values) - set(self.COLUMNS)
        if unknown:
            raise ValueError(f"Unknown response fields: {sorted(unknown)}")
        return dict(values)

    def _notify(self) -> None:
        for handle, callback in list(self._listeners.items()):
            try:
                callback()
            except Exception:
                # The write is already committed; report and keep fanning out
                logger.exception(f"Change listener {handle} failed")


async def create_backend(settings: Settings) -> ResponseBackend:
    """Supabase when credentials are configured, local SQL otherwise"""
    if settings.use_supabase:
        return await SupabaseBackend.connect(settings)
    return SqlResponseBackend.from_url(settings.database_url)
