"""
Broadcast Tests
===============

Fan-out, backpressure, failure isolation and on-demand refresh.
"""

import asyncio
import threading

import pytest

from crowd_monitor.broadcast import BroadcastHub, Subscription

from conftest import make_reading


def snapshot(timestamp=1.0, zone_ids=("AB1", "AB2")):
    return [make_reading(zone_id, timestamp) for zone_id in zone_ids]


class TestFanOut:

    def test_every_subscriber_gets_the_snapshot(self):
        hub = BroadcastHub()
        first = hub.subscribe()
        second = hub.subscribe()

        delivered = hub.publish(snapshot())

        assert delivered == 2
        assert first.get_nowait() == tuple(snapshot())
        assert second.get_nowait() == tuple(snapshot())

    def test_no_subscribers(self):
        assert BroadcastHub().publish(snapshot()) == 0

    def test_unsubscribed_gets_nothing(self):
        hub = BroadcastHub()
        subscription = hub.subscribe()
        hub.unsubscribe(subscription)

        assert hub.publish(snapshot()) == 0
        assert subscription.get_nowait() is None
        assert subscription.closed
        assert hub.subscriber_count == 0

    def test_unsubscribe_unknown_is_ignored(self):
        hub = BroadcastHub()
        hub.unsubscribe(Subscription())
        assert hub.subscriber_count == 0

    def test_snapshots_arrive_in_order(self):
        hub = BroadcastHub()
        subscription = hub.subscribe()
        for ts in (1.0, 2.0, 3.0):
            hub.publish(snapshot(ts))
        stamps = [subscription.get_nowait()[0].timestamp for _ in range(3)]
        assert stamps == [1.0, 2.0, 3.0]


class TestBackpressure:

    def test_slow_subscriber_drops_oldest(self):
        hub = BroadcastHub(max_pending=2)
        slow = hub.subscribe()
        for ts in (1.0, 2.0, 3.0):
            hub.publish(snapshot(ts))

        assert slow.dropped_count == 1
        assert slow.get_nowait()[0].timestamp == 2.0
        assert slow.get_nowait()[0].timestamp == 3.0
        assert slow.get_nowait() is None

    def test_metrics_report_drops(self):
        hub = BroadcastHub(max_pending=1)
        hub.subscribe()
        hub.publish(snapshot(1.0))
        hub.publish(snapshot(2.0))

        metrics = hub.metrics()

        assert metrics["subscribers"] == 1
        assert metrics["publish_count"] == 2
        assert metrics["dropped_snapshots"] == 1

    def test_metrics_list_each_subscription(self):
        hub = BroadcastHub(max_pending=4)
        subscription = hub.subscribe(label="dashboard")
        hub.publish(snapshot())

        (entry,) = hub.metrics()["subscriptions"]

        assert entry["subscriber_id"] == subscription.subscriber_id
        assert entry["pending"] == 1
        assert entry["maxsize"] == 4
        assert entry["delivered_count"] == 1
        assert entry["dropped_count"] == 0

    def test_rejects_zero_queue(self):
        with pytest.raises(ValueError):
            Subscription(maxsize=0)


class TestFailureIsolation:

    def test_failing_subscriber_is_removed(self, monkeypatch):
        hub = BroadcastHub()
        healthy = hub.subscribe()
        broken = hub.subscribe()

        def explode(_snapshot):
            raise RuntimeError("Event loop is closed")

        monkeypatch.setattr(broken, "deliver", explode)

        delivered = hub.publish(snapshot())

        assert delivered == 1
        assert healthy.get_nowait() is not None
        assert hub.subscriber_count == 1
        assert hub.metrics()["failed_deliveries"] == 1

        # Later publishes keep reaching the healthy subscriber
        assert hub.publish(snapshot(2.0)) == 1


class TestRefreshOnDemand:

    def test_returns_fresh_snapshot_without_publishing(self):
        calls = []

        def source():
            calls.append(1)
            return snapshot(float(len(calls)))

        hub = BroadcastHub(refresh_source=source)
        subscription = hub.subscribe()

        result = hub.refresh_on_demand()

        assert isinstance(result, tuple)
        assert len(result) == 2
        assert len(calls) == 1
        assert subscription.get_nowait() is None
        assert hub.metrics()["publish_count"] == 0

    def test_without_source_raises(self):
        with pytest.raises(RuntimeError):
            BroadcastHub().refresh_on_demand()


class TestCrossThreadDelivery:

    def test_publish_from_worker_thread(self):
        async def scenario():
            hub = BroadcastHub()
            subscription = hub.subscribe()
            delivered = await asyncio.to_thread(hub.publish, snapshot(7.0))
            received = await subscription.get(timeout=1.0)
            return delivered, received

        delivered, received = asyncio.run(scenario())

        assert delivered == 1
        assert received is not None
        assert received[0].timestamp == 7.0

    def test_get_times_out(self):
        async def scenario():
            return await BroadcastHub().subscribe().get(timeout=0.01)

        assert asyncio.run(scenario()) is None

    def test_loopless_subscription_is_bound_to_its_thread(self):
        subscription = Subscription()
        errors = []

        def deliver_elsewhere():
            try:
                subscription.deliver(tuple(snapshot()))
            except RuntimeError as e:
                errors.append(e)

        worker = threading.Thread(target=deliver_elsewhere)
        worker.start()
        worker.join(timeout=5)

        assert len(errors) == 1
        assert subscription.get_nowait() is None

    def test_hub_drops_loopless_subscriber_fed_from_another_thread(self):
        hub = BroadcastHub()
        subscription = hub.subscribe()
        delivered = []

        worker = threading.Thread(target=lambda: delivered.append(hub.publish(snapshot())))
        worker.start()
        worker.join(timeout=5)

        assert delivered == [0]
        assert hub.subscriber_count == 0
        assert subscription.closed


class TestConcurrentMembership:
    """subscribe()/unsubscribe() racing an in-flight publish."""

    PUBLISHES = 300

    def test_churn_during_publish(self):
        async def scenario():
            loop = asyncio.get_running_loop()
            hub = BroadcastHub(max_pending=self.PUBLISHES)
            stable = hub.subscribe(label="stable")
            errors = []

            def publisher():
                try:
                    for n in range(self.PUBLISHES):
                        hub.publish(snapshot(float(n)))
                except Exception as e:
                    errors.append(e)

            def churn():
                try:
                    for _ in range(200):
                        subscription = hub.subscribe(loop=loop)
                        hub.unsubscribe(subscription)
                except Exception as e:
                    errors.append(e)

            await asyncio.gather(
                asyncio.to_thread(publisher),
                *(asyncio.to_thread(churn) for _ in range(3)),
            )

            received = []
            while (item := stable.get_nowait()) is not None:
                received.append(item[0].timestamp)
            return hub, errors, received

        hub, errors, received = asyncio.run(scenario())

        assert errors == []
        assert hub.subscriber_count == 1
        assert hub.metrics()["failed_deliveries"] == 0
        assert received == [float(n) for n in range(self.PUBLISHES)]

    def test_subscriber_added_before_publish_receives_it(self):
        async def scenario():
            loop = asyncio.get_running_loop()
            hub = BroadcastHub(max_pending=10_000)
            stop = threading.Event()

            def background_publisher():
                while not stop.is_set():
                    hub.publish(snapshot(-1.0))
                    stop.wait(0.001)

            background = asyncio.ensure_future(asyncio.to_thread(background_publisher))
            try:
                late = hub.subscribe(loop=loop)
                await asyncio.to_thread(hub.publish, snapshot(42.0))
                seen = []
                while (item := late.get_nowait()) is not None:
                    seen.append(item[0].timestamp)
            finally:
                stop.set()
                await background
            return seen

        assert 42.0 in asyncio.run(scenario())
