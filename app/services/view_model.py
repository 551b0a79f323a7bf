import asyncio
import logging
from typing import Callable, Dict, List, Optional, Set

from ..models.enums import FoodCategory
from ..schemas.response import ResponseDraft, ResponsePatch, ResponseRow
from ..schemas.view import FormFields, FormUpdate, RosterEntry, RosterGroup, ViewState
from ..utils.constants import FormLabels, ResponseMessages
from ..utils.validation import ValidationHelpers
from .identity_store import IdentityStore
from .sync_adapter import Subscription, SyncAdapter, SyncAdapterError

logger = logging.getLogger(__name__)


class ViewModelError(Exception):
    """Base exception for view model errors"""

    pass


class FormValidationError(ViewModelError):
    """Form cannot be submitted as filled in"""

    pass


class ResponseNotFoundError(ViewModelError):
    """Response is not in the current snapshot"""

    pass


class PermissionDeniedError(ViewModelError):
    """Row does not belong to this client's identity"""

    pass


class ConfirmationRequiredError(ViewModelError):
    """Destructive action was not confirmed by the user"""

    pass


# Derivations. Each is recomputed from the full snapshot on every call.


def category_counts(rows: List[ResponseRow]) -> Dict[str, int]:
    """Attending rows per fixed category; foreign categories count nowhere"""
    counts = {category: 0 for category in FoodCategory.values()}
    for row in rows:
        if row.attending and row.category in counts:
            counts[row.category] += 1
    return counts


def total_attending(rows: List[ResponseRow]) -> int:
    """Distinct names among attending rows (one person may bring many dishes)"""
    return len({row.name for row in rows if row.attending})


def group_by_name(rows: List[ResponseRow]) -> Dict[str, List[ResponseRow]]:
    groups: Dict[str, List[ResponseRow]] = {}
    for row in rows:
        groups.setdefault(row.name, []).append(row)
    return groups


def is_owned(row: ResponseRow, owned_id: Optional[str]) -> bool:
    return owned_id is not None and row.id == owned_id


StateListener = Callable[[ViewState], None]


class ViewModel:
    """Local view of the shared responses table for one client"""

    def __init__(self, adapter: SyncAdapter, identity: IdentityStore):
        self.adapter = adapter
        self.identity = identity

        self.responses: List[ResponseRow] = []
        self.form = FormFields()
        self.owned_id: Optional[str] = None
        self.editing_id: Optional[str] = None
        self.last_error: Optional[str] = None

        self._subscription: Optional[Subscription] = None
        self._refreshes: Set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []

    # Lifecycle

    @property
    def mounted(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def mount(self) -> None:
        """Load identity, start listening for changes and fetch the first snapshot"""
        if self.mounted:
            return

        self.owned_id = self.identity.load()
        self._subscription = await self.adapter.subscribe_to_changes(self._on_change)
        await self.refresh()

        # Resume editing the row this client owns
        owned = self._find(self.owned_id)
        if owned is not None and self.editing_id is None:
            self._load_into_form(owned)
            self._emit()

    async def unmount(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                await subscription.close()
            except SyncAdapterError as e:
                logger.warning(f"Unsubscribe on unmount failed: {e}")

        pending = list(self._refreshes)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._refreshes.clear()

    def _on_change(self) -> None:
        if not self.mounted:
            return
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def refresh(self) -> bool:
        """Replace the snapshot with a full refetch; keep the old one on failure"""
        try:
            rows = await self.adapter.fetch_all()
        except SyncAdapterError as e:
            logger.warning(f"Keeping previous snapshot: {e}")
            self.last_error = str(e)
            return False

        self.responses = rows
        self.last_error = None
        self._emit()
        return True

    async def settle(self) -> None:
        """Wait until every refetch triggered so far has finished"""
        while self._refreshes:
            await asyncio.gather(*list(self._refreshes), return_exceptions=True)

    # Listeners

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _emit(self) -> None:
        if not self._listeners:
            return
        state = self.state()
        for listener in list(self._listeners):
            listener(state)

    # Derived state

    @property
    def counts(self) -> Dict[str, int]:
        return category_counts(self.responses)

    @property
    def total_attending(self) -> int:
        return total_attending(self.responses)

    @property
    def roster(self) -> Dict[str, List[ResponseRow]]:
        return group_by_name(self.responses)

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    def can_edit(self, row: ResponseRow) -> bool:
        return is_owned(row, self.owned_id)

    def state(self) -> ViewState:
        roster = [
            RosterGroup(
                name=name,
                attending=rows[0].attending,
                entries=[
                    RosterEntry(
                        id=row.id,
                        category=row.category,
                        dish=row.dish,
                        attending=row.attending,
                        can_edit=self.can_edit(row),
                    )
                    for row in rows
                ],
            )
            for name, rows in self.roster.items()
        ]

        return ViewState(
            form=self.form,
            mode="edit" if self.is_editing else "create",
            editing_id=self.editing_id,
            owned_id=self.owned_id,
            form_title=FormLabels.EDIT_TITLE if self.is_editing else FormLabels.CREATE_TITLE,
            submit_label=(
                FormLabels.EDIT_SUBMIT if self.is_editing else FormLabels.CREATE_SUBMIT
            ),
            counts=self.counts,
            total_attending=self.total_attending,
            roster=roster,
        )

    # Form

    def update_form(self, changes: FormUpdate) -> FormFields:
        values = changes.model_dump(exclude_unset=True, exclude_none=True)
        if self.is_editing:
            # An edit never renames the row
            values.pop("name", None)
        self.form = self.form.model_copy(update=values)
        self._emit()
        return self.form

    def begin_edit(self, response_id: str) -> None:
        row = self._require_owned(response_id)
        self._load_into_form(row)
        self._emit()

    def cancel_edit(self) -> None:
        self._reset_form()
        self._emit()

    async def submit(self) -> str:
        """Insert in create mode, update in edit mode. Returns the row id.

        On failure the form is left exactly as it was.
        """
        if not ValidationHelpers.validate_name(self.form.name):
            raise FormValidationError(ResponseMessages.NAME_REQUIRED)

        if self.editing_id is not None:
            response_id = self.editing_id
            patch = self._edit_patch(response_id)
            if patch.model_fields_set:
                await self.adapter.update(response_id, patch)
            else:
                logger.debug(f"Nothing changed on {response_id}; skipping update")
        else:
            draft = ResponseDraft(
                name=self.form.name,
                attending=self.form.attending,
                category=self.form.category,
                dish=ValidationHelpers.clean_dish(self.form.dish),
            )
            response_id = await self.adapter.insert(draft)
            self.identity.save(response_id)
            self.owned_id = response_id

        self._reset_form()
        self._emit()
        return response_id

    async def delete(self, response_id: str, confirmed: bool = False) -> None:
        self._require_owned(response_id)
        if not confirmed:
            raise ConfirmationRequiredError(ResponseMessages.CONFIRM_DELETE)

        await self.adapter.remove(response_id)

        if self.editing_id == response_id:
            self._reset_form()
        await self.refresh()

    # Helpers

    def _find(self, response_id: Optional[str]) -> Optional[ResponseRow]:
        if response_id is None:
            return None
        for row in self.responses:
            if row.id == response_id:
                return row
        return None

    def _require_owned(self, response_id: str) -> ResponseRow:
        row = self._find(response_id)
        if row is None:
            raise ResponseNotFoundError(f"Response {response_id} not found")
        if not self.can_edit(row):
            raise PermissionDeniedError(ResponseMessages.NOT_YOURS)
        return row

    def _load_into_form(self, row: ResponseRow) -> None:
        self.editing_id = row.id
        self.form = FormFields(
            name=row.name,
            attending=row.attending,
            category=row.category if row.has_known_category else FoodCategory.MAIN,
            dish=row.dish or "",
        )

    def _reset_form(self) -> None:
        # Name and attendance stay so another dish can be added right away
        self.editing_id = None
        self.form = self.form.model_copy(
            update={"category": FoodCategory.MAIN, "dish": ""}
        )

    def _edit_patch(self, response_id: str) -> ResponsePatch:
        values = {
            "attending": self.form.attending,
            "category": self.form.category,
            "dish": ValidationHelpers.clean_dish(self.form.dish),
        }

        row = self._find(response_id)
        if row is not None:
            current = {
                "attending": row.attending,
                "category": row.category,
                "dish": ValidationHelpers.clean_dish(row.dish),
            }
            values = {
                field: value
                for field, value in values.items()
                if value != current[field]
            }

        return ResponsePatch(**values)
