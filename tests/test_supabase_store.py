"""
Tests for the Supabase store against a mocked supabase client.

Every query builder method returns the same mock, so a test only has to
script what `.execute()` returns.
"""

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from dinner.core.errors import StalePlanVersion
from dinner.db.supabase_store import MEAL_PLANS, SupabaseStore, create_supabase_client


def _run(coro):
    return asyncio.run(coro)


def _plan_row(**overrides):
    row = {
        "id": 1,
        "name": "Weekly Meal Plan",
        "household_id": 1,
        "created_at": "2026-10-01T12:00:00+00:00",
        "is_active": True,
        "meals": [{"id": "m1", "name": "Tacos", "ingredients": ["1 lb beef"]}],
        "version": 1,
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_supabase():
    """Mock supabase client whose query chain always returns one query mock."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "neq", "order", "limit", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    client.table.return_value = query
    return client, query


def _results(query, *data):
    query.execute.side_effect = [MagicMock(data=d) for d in data]


class TestReads:
    def test_get_meal_plan(self, mock_supabase):
        client, query = mock_supabase
        _results(query, [_plan_row()])

        plan = _run(SupabaseStore(client).get_meal_plan(1))

        client.table.assert_called_with(MEAL_PLANS)
        query.eq.assert_called_with("id", 1)
        assert plan.meals[0].name == "Tacos"

    def test_missing_plan(self, mock_supabase):
        client, query = mock_supabase
        _results(query, [])

        assert _run(SupabaseStore(client).get_meal_plan(9)) is None

    def test_current_plan_orders_by_created_at(self, mock_supabase):
        client, query = mock_supabase
        _results(query, [_plan_row(id=3)])

        plan = _run(SupabaseStore(client).get_current_meal_plan(household_id=1))

        assert plan.id == 3
        query.eq.assert_any_call("is_active", True)
        query.eq.assert_any_call("household_id", 1)
        query.order.assert_any_call("created_at", desc=True)


class TestMealPlanWrites:
    def test_meal_write_is_version_conditional(self, mock_supabase):
        client, query = mock_supabase
        _results(query, [_plan_row()], [_plan_row(meals=[], version=2)])

        plan = _run(SupabaseStore(client).update_meal_plan(1, {"meals": []}))

        assert plan.version == 2
        query.eq.assert_any_call("version", 1)
        row = query.update.call_args.args[0]
        assert row["meals"] == []
        assert row["version"] == 2
        assert "id" not in row

    def test_conflicting_write_raises(self, mock_supabase):
        client, query = mock_supabase
        # read, failed conditional update, re-read
        _results(query, [_plan_row()], [], [_plan_row(version=3)])

        with pytest.raises(StalePlanVersion) as exc_info:
            _run(SupabaseStore(client).update_meal_plan(1, {"meals": []}))

        assert exc_info.value.actual == 3

    def test_flag_write_is_unconditional(self, mock_supabase):
        client, query = mock_supabase
        _results(query, [_plan_row()], [_plan_row(is_active=False)])

        plan = _run(SupabaseStore(client).update_meal_plan(1, {"is_active": False}))

        assert plan.is_active is False
        assert ("version", 1) not in [c.args for c in query.eq.call_args_list]
        assert set(query.update.call_args.args[0]) == {"is_active", "last_updated"}

    def test_create_omits_id(self, mock_supabase):
        client, query = mock_supabase
        _results(query, [_plan_row(id=7, meals=[])])

        plan = _run(SupabaseStore(client).create_meal_plan({"household_id": 1, "meals": []}))

        assert plan.id == 7
        assert "id" not in query.insert.call_args.args[0]


class TestOther:
    def test_clear_messages_uses_filter(self, mock_supabase):
        client, query = mock_supabase
        _results(query, [])

        _run(SupabaseStore(client).clear_messages())

        query.delete.assert_called_once()
        query.neq.assert_called_with("id", "")

    def test_client_requires_configuration(self):
        with patch("dinner.db.supabase_store.settings") as mock_settings:
            mock_settings.supabase_url = None
            mock_settings.supabase_anon_key = None
            with pytest.raises(RuntimeError):
                create_supabase_client()
