"""Tests for the potluck view model."""

import pytest
from unittest.mock import AsyncMock

from conftest import row_values

from app.models.enums import FoodCategory
from app.schemas.response import ResponseRow
from app.schemas.view import FormUpdate
from app.services.sync_adapter import SyncAdapterError
from app.services.view_model import (
    ConfirmationRequiredError,
    FormValidationError,
    PermissionDeniedError,
    ResponseNotFoundError,
    category_counts,
    group_by_name,
    is_owned,
    total_attending,
)


def make_row(id, name="Ada", attending=True, category="Main", dish=None):
    return ResponseRow(
        id=id, name=name, attending=attending, category=category, dish=dish
    )


class TestDerivations:
    """Tests for the pure snapshot derivations."""

    def test_counts_only_attending_rows(self):
        rows = [
            make_row("1", category="Main"),
            make_row("2", category="Main", attending=False),
            make_row("3", category="Drink"),
        ]

        counts = category_counts(rows)

        assert counts == {"Main": 1, "Appetizer": 0, "Dessert": 0, "Drink": 1}

    def test_foreign_category_counts_nowhere(self):
        rows = [make_row("1", category="Main"), make_row("2", category="Soup")]

        counts = category_counts(rows)

        assert sum(counts.values()) == 1
        assert "Soup" not in counts

    def test_counts_never_exceed_attending_rows(self):
        rows = [
            make_row("1", category="Main"),
            make_row("2", category="Salad"),
            make_row("3", category="Dessert", attending=False),
            make_row("4", name="Bo", category="Drink"),
        ]

        attending_rows = [row for row in rows if row.attending]
        assert sum(category_counts(rows).values()) <= len(attending_rows)

    def test_total_counts_distinct_attending_names(self):
        rows = [
            make_row("1", name="Ada", category="Main"),
            make_row("2", name="Ada", category="Dessert"),
            make_row("3", name="Bo", attending=False),
            make_row("4", name="Cy", category="Drink"),
        ]

        assert total_attending(rows) == 2

    def test_roster_is_a_partition_in_first_appearance_order(self):
        rows = [
            make_row("1", name="Bo"),
            make_row("2", name="Ada"),
            make_row("3", name="Bo", category="Drink"),
        ]

        groups = group_by_name(rows)

        assert list(groups) == ["Bo", "Ada"]
        assert [row.id for row in groups["Bo"]] == ["1", "3"]
        flattened = sorted(row.id for group in groups.values() for row in group)
        assert flattened == sorted(row.id for row in rows)

    def test_ownership_is_exact_id_match(self):
        row = make_row("abc")

        assert is_owned(row, "abc")
        assert not is_owned(row, "ab")
        assert not is_owned(row, None)


class TestMountLifecycle:
    """Tests for mount/unmount and the change subscription."""

    @pytest.mark.asyncio
    async def test_mount_fetches_snapshot(self, sql_backend, make_view):
        await sql_backend.insert(row_values(dish="Soup"))
        view = make_view()

        await view.mount()

        assert view.mounted
        assert [row.dish for row in view.responses] == ["Soup"]
        await view.unmount()

    @pytest.mark.asyncio
    async def test_repeated_mount_cycles_do_not_leak_listeners(
        self, sql_backend, make_view
    ):
        view = make_view()

        for _ in range(3):
            await view.mount()
            await view.mount()
            assert sql_backend.listener_count == 1
            await view.unmount()
            assert sql_backend.listener_count == 0

    @pytest.mark.asyncio
    async def test_mount_resumes_editing_owned_row(self, sql_backend, make_view):
        rows = await sql_backend.insert(
            row_values(name="Ada", category="Dessert", dish="Pie")
        )
        view = make_view(rows[0]["id"])

        await view.mount()

        assert view.editing_id == rows[0]["id"]
        assert view.form.name == "Ada"
        assert view.form.category == FoodCategory.DESSERT
        assert view.form.dish == "Pie"
        await view.unmount()

    @pytest.mark.asyncio
    async def test_mount_with_stale_identity_stays_in_create_mode(self, make_view):
        view = make_view("deleted-long-ago")

        await view.mount()

        assert view.owned_id == "deleted-long-ago"
        assert view.editing_id is None
        await view.unmount()

    @pytest.mark.asyncio
    async def test_remote_change_triggers_refetch(self, sql_backend, make_view):
        view = make_view()
        await view.mount()

        await sql_backend.insert(row_values(name="Bo", category="Drink"))
        await view.settle()

        assert view.counts["Drink"] == 1
        await view.unmount()

    @pytest.mark.asyncio
    async def test_unmounted_view_ignores_changes(self, sql_backend, make_view):
        view = make_view()
        await view.mount()
        await view.unmount()

        await sql_backend.insert(row_values())
        await view.settle()

        assert view.responses == []

    @pytest.mark.asyncio
    async def test_notification_storm_converges(self, sql_backend, adapter, make_view):
        view = make_view()
        await view.mount()

        # Three writes plus three stray notifications before anything settles
        for name in ("Ada", "Bo", "Cy"):
            await sql_backend.insert(row_values(name=name))
        for _ in range(3):
            view._on_change()
        await view.settle()

        expected = await adapter.fetch_all()
        assert [row.id for row in view.responses] == [row.id for row in expected]
        assert view.total_attending == 3
        await view.unmount()

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_snapshot(self, sql_backend, make_view):
        await sql_backend.insert(row_values())
        view = make_view()
        await view.mount()

        view.adapter.fetch_all = AsyncMock(side_effect=SyncAdapterError("offline"))
        ok = await view.refresh()

        assert ok is False
        assert len(view.responses) == 1
        assert view.last_error == "offline"
        await view.unmount()


class TestSubmit:
    """Tests for add/update submission."""

    @pytest.mark.asyncio
    async def test_empty_name_is_rejected_without_backend_call(self, make_view):
        view = make_view()
        await view.mount()
        view.adapter.insert = AsyncMock()
        view.update_form(FormUpdate(name="   ", dish="Soup"))

        with pytest.raises(FormValidationError, match="Please enter your name"):
            await view.submit()

        view.adapter.insert.assert_not_called()
        assert view.form.dish == "Soup"
        await view.unmount()

    @pytest.mark.asyncio
    async def test_insert_persists_identity(self, adapter, make_view):
        view = make_view()
        await view.mount()
        view.update_form(
            FormUpdate(name="Ada", category=FoodCategory.APPETIZER, dish="Olives")
        )

        response_id = await view.submit()

        assert view.identity.load() == response_id
        assert view.identity.take_pending() == response_id
        assert view.identity.take_pending() is None

        stored = {row.id: row for row in await adapter.fetch_all()}[response_id]
        assert stored.name == "Ada"
        assert stored.attending is True
        assert stored.category == "Appetizer"
        assert stored.dish == "Olives"
        await view.unmount()

    @pytest.mark.asyncio
    async def test_submit_resets_category_and_dish_but_keeps_name(self, make_view):
        view = make_view()
        await view.mount()
        view.update_form(
            FormUpdate(name="Ada", category=FoodCategory.DRINK, dish="Lemonade")
        )

        await view.submit()

        assert view.form.name == "Ada"
        assert view.form.category == FoodCategory.MAIN
        assert view.form.dish == ""
        assert view.editing_id is None
        await view.unmount()

    @pytest.mark.asyncio
    async def test_failed_insert_leaves_form_untouched(self, make_view):
        view = make_view()
        await view.mount()
        view.adapter.insert = AsyncMock(side_effect=SyncAdapterError("rejected"))
        view.update_form(FormUpdate(name="Ada", category=FoodCategory.DRINK, dish="Tea"))
        before = view.form.model_copy()

        with pytest.raises(SyncAdapterError, match="rejected"):
            await view.submit()

        assert view.form == before
        assert view.owned_id is None
        assert view.identity.take_pending() is None
        await view.unmount()

    @pytest.mark.asyncio
    async def test_unchanged_edit_leaves_snapshot_identical(self, adapter, make_view):
        view = make_view()
        await view.mount()
        view.update_form(FormUpdate(name="Ada", dish="Lasagna"))
        response_id = await view.submit()
        await view.settle()
        before = [row.model_dump() for row in await adapter.fetch_all()]

        view.begin_edit(response_id)
        await view.submit()
        await view.settle()

        after = [row.model_dump() for row in await adapter.fetch_all()]
        assert after == before
        assert [row.model_dump() for row in view.responses] == before
        await view.unmount()

    @pytest.mark.asyncio
    async def test_edit_of_row_deleted_elsewhere_fails(self, sql_backend, make_view):
        view = make_view()
        await view.mount()
        view.update_form(FormUpdate(name="Ada", dish="Lasagna"))
        response_id = await view.submit()
        await view.settle()
        view.begin_edit(response_id)
        view.update_form(FormUpdate(dish="Risotto"))

        # Another client removes the row before this one saves
        await sql_backend.delete(response_id)

        with pytest.raises(SyncAdapterError, match="not found"):
            await view.submit()
        assert view.editing_id == response_id
        await view.unmount()

    @pytest.mark.asyncio
    async def test_name_is_locked_while_editing(self, make_view):
        view = make_view()
        await view.mount()
        view.update_form(FormUpdate(name="Ada", dish="Lasagna"))
        response_id = await view.submit()
        await view.settle()
        view.begin_edit(response_id)

        view.update_form(FormUpdate(name="Bo", dish="Risotto"))
        await view.submit()
        await view.settle()

        assert view.form.name == "Ada"
        assert list(view.roster) == ["Ada"]
        assert view.roster["Ada"][0].dish == "Risotto"

        view.update_form(FormUpdate(name="Bo"))
        assert view.form.name == "Bo"
        await view.unmount()


class TestOwnership:
    """Tests for ownership gating of edit and delete."""

    @pytest.mark.asyncio
    async def test_controls_only_on_owned_row(self, sql_backend, make_view):
        other = await sql_backend.insert(row_values(name="Ada", dish="Salad"))
        view = make_view()
        await view.mount()
        view.update_form(FormUpdate(name="Ada", dish="Bread"))
        mine = await view.submit()
        await view.settle()

        entries = [entry for group in view.state().roster for entry in group.entries]

        assert {entry.id for entry in entries if entry.can_edit} == {mine}
        with pytest.raises(PermissionDeniedError):
            view.begin_edit(other[0]["id"])
        with pytest.raises(PermissionDeniedError):
            await view.delete(other[0]["id"], confirmed=True)
        await view.unmount()

    @pytest.mark.asyncio
    async def test_no_identity_means_no_controls(self, sql_backend, make_view):
        await sql_backend.insert(row_values())
        view = make_view()
        await view.mount()

        assert not any(
            entry.can_edit for group in view.state().roster for entry in group.entries
        )
        await view.unmount()

    @pytest.mark.asyncio
    async def test_unknown_row_is_not_found(self, make_view):
        view = make_view()
        await view.mount()

        with pytest.raises(ResponseNotFoundError):
            view.begin_edit("missing")
        await view.unmount()

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, make_view):
        view = make_view()
        await view.mount()
        view.update_form(FormUpdate(name="Ada"))
        response_id = await view.submit()
        await view.settle()

        with pytest.raises(ConfirmationRequiredError):
            await view.delete(response_id)

        assert len(view.responses) == 1
        await view.unmount()


class TestScenario:
    """The add, change category, delete walkthrough."""

    @pytest.mark.asyncio
    async def test_add_update_delete(self, make_view):
        view = make_view()
        await view.mount()

        view.update_form(
            FormUpdate(
                name="Ada", attending=True, category=FoodCategory.MAIN, dish="Lasagna"
            )
        )
        response_id = await view.submit()
        await view.settle()

        assert view.counts["Main"] == 1
        assert view.total_attending == 1
        assert [(row.category, row.dish) for row in view.roster["Ada"]] == [
            ("Main", "Lasagna")
        ]

        view.begin_edit(response_id)
        assert view.state().submit_label == "Update Dish"
        view.update_form(FormUpdate(category=FoodCategory.DESSERT))
        await view.submit()
        await view.settle()

        assert view.counts["Main"] == 0
        assert view.counts["Dessert"] == 1
        assert view.total_attending == 1
        assert view.state().submit_label == "Add Dish"

        await view.delete(response_id, confirmed=True)

        assert all(count == 0 for count in view.counts.values())
        assert view.total_attending == 0
        assert "Ada" not in view.roster
        await view.unmount()

    @pytest.mark.asyncio
    async def test_deleting_row_under_edit_returns_to_create_mode(self, make_view):
        view = make_view()
        await view.mount()
        view.update_form(FormUpdate(name="Ada", dish="Lasagna"))
        response_id = await view.submit()
        await view.settle()
        view.begin_edit(response_id)

        await view.delete(response_id, confirmed=True)

        assert view.editing_id is None
        assert view.state().mode == "create"
        await view.unmount()

    @pytest.mark.asyncio
    async def test_listeners_receive_fresh_state(self, sql_backend, make_view):
        view = make_view()
        await view.mount()
        seen = []
        view.add_listener(seen.append)

        await sql_backend.insert(row_values(name="Bo", category="Drink"))
        await view.settle()
        view.remove_listener(seen.append)
        view.update_form(FormUpdate(name="ignored"))

        assert seen[-1].counts["Drink"] == 1
        assert all(state.form.name != "ignored" for state in seen)
        await view.unmount()
