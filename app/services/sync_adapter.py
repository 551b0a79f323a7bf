import logging
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from ..schemas.response import ResponseDraft, ResponsePatch, ResponseRow
from .response_backend import ResponseBackend

logger = logging.getLogger(__name__)


class SyncAdapterError(Exception):
    """A backend operation failed; the message carries the backend's text"""

    pass


class Subscription:
    """Handle for one change-notification registration"""

    def __init__(self, backend: ResponseBackend, handle: Any):
        self.backend = backend
        self._handle = handle

    @property
    def active(self) -> bool:
        return self._handle is not None

    async def close(self) -> None:
        """Tear down the registration. Safe to call more than once."""
        if self._handle is None:
            return

        handle, self._handle = self._handle, None
        try:
            await self.backend.unsubscribe(handle)
        except Exception as e:
            raise SyncAdapterError(f"Failed to unsubscribe: {str(e)}")


class SyncAdapter:
    def __init__(self, backend: ResponseBackend, order_by: Optional[str] = "created_at"):
        self.backend = backend
        self.order_by = order_by

    async def fetch_all(self) -> List[ResponseRow]:
        """Fetch the whole table as a fresh snapshot"""
        try:
            data = await self.backend.select_all(self.order_by)
        except Exception as e:
            logger.warning(f"Fetching responses failed: {str(e)}")
            raise SyncAdapterError(f"Failed to load responses: {str(e)}")

        return self._parse_snapshot(data)

    async def insert(self, draft: ResponseDraft) -> str:
        """Create a row and return its backend-assigned id"""
        try:
            rows = await self.backend.insert(draft.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Insert failed: {str(e)}")
            raise SyncAdapterError(f"Failed to add dish: {str(e)}")

        if not rows or not rows[0].get("id"):
            raise SyncAdapterError("Failed to add dish: backend returned no id")

        response_id = str(rows[0]["id"])
        logger.info(f"Inserted response {response_id} for {draft.name!r}")
        return response_id

    async def update(
        self,
        response_id: str,
        patch: ResponsePatch,
        owner_name: Optional[str] = None,
    ) -> None:
        """Apply a partial change to exactly one row.

        ``owner_name`` adds an equality filter on ``name``. It is a weak
        ownership check only; anyone who knows the name passes it.
        """
        values = patch.to_values()
        try:
            rows = await self.backend.update(response_id, values, name=owner_name)
        except Exception as e:
            logger.warning(f"Update of {response_id} failed: {str(e)}")
            raise SyncAdapterError(f"Failed to update dish: {str(e)}")

        if not rows:
            raise SyncAdapterError(
                f"Failed to update dish: response {response_id} not found"
            )
        logger.info(f"Updated response {response_id}: {sorted(values)}")

    async def remove(self, response_id: str) -> None:
        try:
            await self.backend.delete(response_id)
        except Exception as e:
            logger.warning(f"Delete of {response_id} failed: {str(e)}")
            raise SyncAdapterError(f"Failed to delete dish: {str(e)}")
        logger.info(f"Deleted response {response_id}")

    async def subscribe_to_changes(self, on_change: Callable[[], None]) -> Subscription:
        """Call ``on_change`` whenever any row is inserted, updated or deleted"""
        try:
            handle = await self.backend.subscribe(on_change)
        except Exception as e:
            raise SyncAdapterError(f"Failed to subscribe to changes: {str(e)}")
        return Subscription(self.backend, handle)

    def _parse_snapshot(self, data: Any) -> List[ResponseRow]:
        if not isinstance(data, list):
            logger.warning(
                f"Malformed snapshot ({type(data).__name__}); treating as empty"
            )
            return []

        rows = []
        for item in data:
            try:
                rows.append(ResponseRow.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed response row {item!r}: {e}")
        return rows
