"""Shared fixtures for the potluck tests."""

import pytest

from app.models.enums import FoodCategory
from app.services.identity_store import IdentityStore
from app.services.response_backend import SqlResponseBackend
from app.services.sync_adapter import SyncAdapter
from app.services.view_model import ViewModel


@pytest.fixture
def sql_backend():
    """Responses table in a private in-memory SQLite database."""
    backend = SqlResponseBackend.from_url("sqlite://")
    yield backend
    backend.engine.dispose()


@pytest.fixture
def adapter(sql_backend):
    return SyncAdapter(sql_backend)


@pytest.fixture
def make_view(adapter):
    """Build unmounted views, optionally seeded with an identity token."""

    def factory(response_id=None):
        return ViewModel(adapter, IdentityStore(response_id))

    return factory


def row_values(name="Ada", attending=True, category=FoodCategory.MAIN.value, dish=None):
    return {"name": name, "attending": attending, "category": category, "dish": dish}
