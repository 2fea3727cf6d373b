"""Tests for the connection status publisher."""

from livefolio.streaming.status import ConnectionStatus, ConnectionStatusPublisher, StreamState


class TestConnectionStatusPublisher:

    def test_initial_state(self):
        publisher = ConnectionStatusPublisher()
        assert publisher.status == ConnectionStatus.DISCONNECTED

    def test_maps_stream_states(self):
        publisher = ConnectionStatusPublisher()
        seen = []
        publisher.subscribe(seen.append)

        for state in (
            StreamState.CONNECTING,
            StreamState.CONNECTED,
            StreamState.ERROR,
            StreamState.CONNECTING,
            StreamState.CLOSED,
        ):
            publisher.set_stream_state(state)

        assert seen == [
            ConnectionStatus.CONNECTING,
            ConnectionStatus.CONNECTED,
            ConnectionStatus.ERROR,
            ConnectionStatus.CONNECTING,
            ConnectionStatus.DISCONNECTED,
        ]

    def test_no_notification_without_change(self):
        publisher = ConnectionStatusPublisher()
        seen = []
        publisher.subscribe(seen.append)

        publisher.set_stream_state(StreamState.DISCONNECTED)
        publisher.set_stream_state(StreamState.CLOSED)  # still "disconnected" publicly

        assert seen == []

    def test_multiple_subscribers_each_see_every_transition(self):
        publisher = ConnectionStatusPublisher()
        first, second = [], []
        publisher.subscribe(first.append)
        publisher.subscribe(second.append)

        publisher.set_stream_state(StreamState.CONNECTING)
        publisher.set_stream_state(StreamState.CONNECTED)

        assert first == second == [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED]

    def test_unsubscribe(self):
        publisher = ConnectionStatusPublisher()
        seen = []
        unsubscribe = publisher.subscribe(seen.append)
        publisher.set_stream_state(StreamState.CONNECTING)
        unsubscribe()
        publisher.set_stream_state(StreamState.CONNECTED)
        assert seen == [ConnectionStatus.CONNECTING]

    def test_replay_delivers_current_status(self):
        publisher = ConnectionStatusPublisher()
        publisher.set_stream_state(StreamState.CONNECTED)
        seen = []
        publisher.subscribe(seen.append, replay=True)
        assert seen == [ConnectionStatus.CONNECTED]

    def test_upstream_outage_reports_error(self):
        publisher = ConnectionStatusPublisher()
        publisher.set_stream_state(StreamState.CONNECTED)
        seen = []
        publisher.subscribe(seen.append)

        publisher.set_upstream_available(False)
        publisher.set_stream_state(StreamState.ERROR)  # stays "error"
        publisher.set_stream_state(StreamState.CONNECTED)  # still error while upstream is down
        publisher.set_upstream_available(True)

        assert seen == [ConnectionStatus.ERROR, ConnectionStatus.CONNECTED]

    def test_reentrant_publish_preserves_order(self):
        publisher = ConnectionStatusPublisher()
        first, second = [], []

        def chaining(status):
            first.append(status)
            if status == ConnectionStatus.CONNECTING:
                publisher.set_stream_state(StreamState.CONNECTED)

        publisher.subscribe(chaining)
        publisher.subscribe(second.append)

        publisher.set_stream_state(StreamState.CONNECTING)

        expected = [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED]
        assert first == expected
        assert second == expected

    def test_failing_subscriber_isolated(self):
        publisher = ConnectionStatusPublisher()
        seen = []

        def broken(status):
            raise RuntimeError("boom")

        publisher.subscribe(broken)
        publisher.subscribe(seen.append)
        publisher.set_stream_state(StreamState.CONNECTING)

        assert seen == [ConnectionStatus.CONNECTING]
