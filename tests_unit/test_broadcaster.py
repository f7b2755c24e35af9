import asyncio
import logging

from app.core.events import DISPLAY_TOPIC, LocalPubSub
from server.broadcaster import PeriodicBroadcaster
from server.registry import PositionRegistry


class CountingPubSub(LocalPubSub):
    def __init__(self, *, failures: int = 0) -> None:
        super().__init__()
        self.calls: list[tuple[str, dict]] = []
        self._failures = failures

    def publish(self, topic, message):
        self.calls.append((topic, message))
        if self._failures:
            self._failures -= 1
            raise RuntimeError("transport unavailable")
        return super().publish(topic, message)


def test_tick_publishes_params_snapshot():
    registry = PositionRegistry()
    registry.upsert("a", 0.5, -0.3)
    pubsub = CountingPubSub()
    broadcaster = PeriodicBroadcaster(registry, pubsub)

    assert broadcaster.tick() is True
    assert pubsub.calls == [(DISPLAY_TOPIC, {"type": "params", "params": [[0.5, -0.3]]})]


def test_tick_with_empty_registry_sends_empty_params():
    pubsub = CountingPubSub()
    PeriodicBroadcaster(PositionRegistry(), pubsub).tick()

    assert pubsub.calls == [(DISPLAY_TOPIC, {"type": "params", "params": []})]


def test_double_start_runs_a_single_loop():
    async def scenario() -> None:
        pubsub = CountingPubSub()
        broadcaster = PeriodicBroadcaster(PositionRegistry(), pubsub, interval=0.1)

        await broadcaster.start()
        task = broadcaster._task
        await broadcaster.start()
        assert broadcaster._task is task

        await asyncio.sleep(0.45)
        await broadcaster.stop()

        # One loop ticks at 0, 0.1, 0.2, 0.3, 0.4; two loops would double that.
        assert 3 <= len(pubsub.calls) <= 6

    asyncio.run(scenario())


def test_stop_halts_ticks_and_is_idempotent():
    async def scenario() -> None:
        pubsub = CountingPubSub()
        broadcaster = PeriodicBroadcaster(PositionRegistry(), pubsub, interval=0.05)

        await broadcaster.stop()
        await broadcaster.start()
        assert broadcaster.running
        await asyncio.sleep(0.12)

        await broadcaster.stop()
        assert not broadcaster.running
        ticks = len(pubsub.calls)

        await asyncio.sleep(0.2)
        assert len(pubsub.calls) == ticks

        await broadcaster.stop()

    asyncio.run(scenario())


def test_restart_after_stop():
    async def scenario() -> None:
        pubsub = CountingPubSub()
        broadcaster = PeriodicBroadcaster(PositionRegistry(), pubsub, interval=0.05)

        await broadcaster.start()
        await broadcaster.stop()
        before = len(pubsub.calls)

        await broadcaster.start()
        await asyncio.sleep(0.08)
        await broadcaster.stop()

        assert len(pubsub.calls) > before

    asyncio.run(scenario())


def test_failed_publish_is_logged_and_loop_continues(caplog):
    async def scenario() -> None:
        pubsub = CountingPubSub(failures=2)
        broadcaster = PeriodicBroadcaster(PositionRegistry(), pubsub, interval=0.02)

        async with pubsub.subscribe(DISPLAY_TOPIC) as subscription:
            await broadcaster.start()
            message = await asyncio.wait_for(subscription.get(), 1)
            assert broadcaster.running
            await broadcaster.stop()

        assert message == {"type": "params", "params": []}
        assert len(pubsub.calls) >= 3

    with caplog.at_level(logging.ERROR, logger="crowdpointer.broadcaster"):
        asyncio.run(scenario())

    failures = [record for record in caplog.records if record.message == "position broadcast failed"]
    assert len(failures) == 2


def test_stop_is_observed_within_one_interval():
    async def scenario() -> None:
        registry = PositionRegistry()
        pubsub = LocalPubSub()
        broadcaster = PeriodicBroadcaster(registry, pubsub, interval=0.2)

        async with pubsub.subscribe(DISPLAY_TOPIC) as subscription:
            await broadcaster.start()
            await asyncio.wait_for(subscription.get(), 1)

            loop = asyncio.get_running_loop()
            started = loop.time()
            await broadcaster.stop()
            assert loop.time() - started < broadcaster.interval

            await asyncio.sleep(0.3)
            assert subscription.queue.empty()

    asyncio.run(scenario())
