"""One-at-a-time navigation with stale-result discard.

A client that starts a new navigation, or leaves the page, must never be
redirected by an older decision that finishes late. ``Navigator`` runs
each decision inside its own ``anyio.CancelScope`` and tags it with a
generation number:

- starting a navigation cancels the pending one;
- ``cancel()`` cancels the pending one without starting another;
- a decision whose generation is no longer current is dropped even if
  it completed.

Usage::

    navigator = Navigator()
    destination = await navigator.navigate(
        lambda: resolve_session_access(42, 7, sessions=store, checker=checker, urls=urls)
    )
    if destination is not None:
        go_to(destination.url)
"""

from collections.abc import Awaitable, Callable

import anyio

from livetrain.marketplace.access import Destination


class Navigator:
    """Serializes navigation decisions for a single client."""

    __slots__ = ("_generation", "_scope", "current")

    def __init__(self) -> None:
        self._generation = 0
        self._scope: anyio.CancelScope | None = None
        self.current: Destination | None = None

    @property
    def pending(self) -> bool:
        return self._scope is not None

    def _supersede(self) -> int:
        self._generation += 1
        if self._scope is not None:
            self._scope.cancel()
            self._scope = None
        return self._generation

    async def navigate(self, decide: Callable[[], Awaitable[Destination]]) -> Destination | None:
        """Run *decide* as the current navigation.

        Returns the destination, or ``None`` when the navigation was
        superseded or cancelled before its result could be applied.
        """
        generation = self._supersede()
        result: Destination | None = None
        with anyio.CancelScope() as scope:
            self._scope = scope
            try:
                result = await decide()
            finally:
                if self._scope is scope:
                    self._scope = None

        if scope.cancel_called or generation != self._generation:
            return None
        self.current = result
        return result

    def cancel(self) -> None:
        """Abandon the pending navigation, if any."""
        self._supersede()
