"""The application state store.

A Store owns the current AppState snapshot. ``dispatch`` is the only way to
change it: the reducer builds the next snapshot, the store swaps it in and
notifies subscribers. Dispatch is synchronous and never awaits.

Middleware wraps dispatch for cross-cutting concerns such as recording
actions in tests::

    seen = []

    def record(action, next_dispatch):
        seen.append(action)
        next_dispatch(action)

    store = Store(middleware=[record])
"""

import logging
from collections.abc import Callable, Sequence

from mailstate.actions import Action
from mailstate.reducer import reduce
from mailstate.state import AppState

logger = logging.getLogger(__name__)

Reducer = Callable[[AppState, Action], AppState]
Listener = Callable[[AppState], None]
Dispatch = Callable[[Action], None]
Middleware = Callable[[Action, Dispatch], None]


class Store:
    """Single source of truth for the client application state.

    Attributes:
        state: The current snapshot (read-only).
    """

    def __init__(
        self,
        initial_state: AppState | None = None,
        reducer: Reducer = reduce,
        middleware: Sequence[Middleware] = (),
    ):
        self._state = initial_state if initial_state is not None else AppState()
        self._reducer = reducer
        self._listeners: list[Listener] = []

        dispatch: Dispatch = self._apply
        for layer in reversed(middleware):
            dispatch = self._wrap(layer, dispatch)
        self._dispatch = dispatch

    @staticmethod
    def _wrap(layer: Middleware, next_dispatch: Dispatch) -> Dispatch:
        def dispatch(action: Action) -> None:
            layer(action, next_dispatch)

        return dispatch

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        """Apply ``action`` and return the resulting snapshot.

        Raises:
            Exception: Whatever the reducer raised; the previous snapshot is
                kept in that case.
        """
        self._dispatch(action)
        return self._state

    def _apply(self, action: Action) -> None:
        previous = self._state
        try:
            new_state = self._reducer(previous, action)
        except Exception:
            logger.error(f"Reducer failed on {action.type.name}; state left unchanged")
            raise

        self._state = new_state
        logger.debug(f"Dispatched {action.type.name}")
        if new_state is not previous:
            self._notify(new_state)

    def _notify(self, state: AppState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception(f"State listener {listener!r} failed")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` to receive every new snapshot.

        Returns:
            A function that removes the listener; calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
