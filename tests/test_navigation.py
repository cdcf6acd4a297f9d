"""Tests for Navigator: superseded and cancelled decisions are dropped."""

import anyio

from livetrain.marketplace import AccessState, Destination, Navigator

DETAIL = Destination("/session/42", AccessState.NOT_ENROLLED)
MEETING = Destination("https://meet.example.com/j/42", AccessState.ENROLLED, external=True)


class TestNavigator:
    async def test_returns_destination(self) -> None:
        navigator = Navigator()

        async def decide() -> Destination:
            return MEETING

        assert await navigator.navigate(decide) == MEETING
        assert navigator.current == MEETING
        assert navigator.pending is False

    async def test_new_navigation_supersedes_pending(self) -> None:
        navigator = Navigator()
        started = anyio.Event()
        results: dict[str, Destination | None] = {}

        async def slow() -> Destination:
            started.set()
            await anyio.sleep_forever()
            return MEETING

        async def fast() -> Destination:
            return DETAIL

        async def run_slow() -> None:
            results["slow"] = await navigator.navigate(slow)

        async with anyio.create_task_group() as tg:
            tg.start_soon(run_slow)
            await started.wait()
            assert navigator.pending is True
            results["fast"] = await navigator.navigate(fast)

        assert results == {"slow": None, "fast": DETAIL}
        assert navigator.current == DETAIL

    async def test_cancel_abandons_pending(self) -> None:
        navigator = Navigator()
        started = anyio.Event()
        results: list[Destination | None] = []

        async def slow() -> Destination:
            started.set()
            await anyio.sleep_forever()
            return MEETING

        async def run() -> None:
            results.append(await navigator.navigate(slow))

        async with anyio.create_task_group() as tg:
            tg.start_soon(run)
            await started.wait()
            navigator.cancel()

        assert results == [None]
        assert navigator.current is None
        assert navigator.pending is False

    async def test_completed_but_stale_result_is_dropped(self) -> None:
        navigator = Navigator()

        async def decide_then_leave() -> Destination:
            # The client leaves after the decision is computed but before it applies
            navigator.cancel()
            return MEETING

        assert await navigator.navigate(decide_then_leave) is None
        assert navigator.current is None

    async def test_current_keeps_last_applied(self) -> None:
        navigator = Navigator()

        async def first() -> Destination:
            return DETAIL

        async def abandoned() -> Destination:
            navigator.cancel()
            return MEETING

        await navigator.navigate(first)
        await navigator.navigate(abandoned)
        assert navigator.current == DETAIL

    async def test_cancel_without_pending_is_noop(self) -> None:
        navigator = Navigator()
        navigator.cancel()
        assert navigator.pending is False
