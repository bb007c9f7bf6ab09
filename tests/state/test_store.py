"""Unit tests for the Store: snapshot swapping, subscriptions and middleware."""

import logging

import pytest

from mailstate import actions
from mailstate.reducer import reduce
from mailstate.state import AppState
from mailstate.store import Store


class TestDispatch:
    def test_dispatch_returns_new_snapshot(self, store):
        before = store.state

        after = store.dispatch(actions.set_error("boom"))

        assert after is store.state
        assert after is not before
        assert before.error is None
        assert after.error == "boom"

    def test_initial_state_is_used(self):
        initial = AppState(error="preset")

        assert Store(initial_state=initial).state is initial

    def test_reducer_error_keeps_previous_state(self, caplog):
        def broken(state, action):
            raise RuntimeError("reducer bug")

        store = Store(reducer=broken)
        before = store.state

        with caplog.at_level(logging.ERROR, logger="mailstate.store"):
            with pytest.raises(RuntimeError):
                store.dispatch(actions.clear_error())

        assert store.state is before
        assert "CLEAR_ERROR" in caplog.text


class TestSubscribe:
    def test_listener_receives_each_new_snapshot(self, store):
        seen = []
        store.subscribe(seen.append)

        store.dispatch(actions.load_accounts_start())
        store.dispatch(actions.load_accounts_success([]))

        assert [s.is_loading for s in seen] == [True, False]

    def test_unchanged_state_is_not_broadcast(self, store):
        seen = []
        store.subscribe(seen.append)

        store.dispatch(actions.connection_test_cleared("unknown"))

        assert seen == []

    def test_unsubscribe_is_idempotent(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        store.dispatch(actions.set_error("x"))

        assert seen == []

    def test_failing_listener_does_not_stop_others(self, store, caplog):
        seen = []

        def broken(state):
            raise ValueError("listener bug")

        store.subscribe(broken)
        store.subscribe(seen.append)

        with caplog.at_level(logging.ERROR, logger="mailstate.store"):
            store.dispatch(actions.set_error("x"))

        assert len(seen) == 1
        assert store.state.error == "x"
        assert "listener bug" in caplog.text

    def test_listener_may_unsubscribe_during_notification(self, store):
        calls = []

        def once(state):
            calls.append(state)
            unsubscribe()

        unsubscribe = store.subscribe(once)

        store.dispatch(actions.set_error("a"))
        store.dispatch(actions.set_error("b"))

        assert len(calls) == 1


class TestMiddleware:
    def test_middleware_runs_in_order_around_reducer(self):
        order = []

        def outer(action, next_dispatch):
            order.append("outer")
            next_dispatch(action)

        def inner(action, next_dispatch):
            order.append("inner")
            next_dispatch(action)

        def recording_reducer(state, action):
            order.append("reduce")
            return reduce(state, action)

        store = Store(reducer=recording_reducer, middleware=[outer, inner])
        store.dispatch(actions.clear_error())

        assert order == ["outer", "inner", "reduce"]

    def test_middleware_can_record_actions(self):
        seen = []

        def record(action, next_dispatch):
            seen.append(action.type)
            next_dispatch(action)

        store = Store(middleware=[record])
        store.dispatch(actions.load_emails_start())

        assert seen == [actions.ActionType.LOAD_EMAILS_START]
