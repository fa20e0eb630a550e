"""Unit tests for CommandDispatcher."""

import threading
import time
import unittest
from unittest.mock import MagicMock

from groundstation.dispatcher import CommandDispatcher
from groundstation.errors import NotConnected, TransportError
from groundstation.link.base import Link
from groundstation.models import Command, LinkState


class TestCommandDispatcher(unittest.TestCase):
    """Tests for command sends against a mocked link."""

    def setUp(self):
        self.link = MagicMock(spec=Link)
        self.state = LinkState.CONNECTED
        self.messages = []
        self.dispatcher = CommandDispatcher(
            self.link,
            state=lambda: self.state,
            min_send_interval=0.0,
            notify=self.messages.append,
        )

    def test_send_writes_code_and_terminator(self):
        self.dispatcher.send(Command.ARM)
        self.link.write.assert_called_once_with(b"A\n")
        self.assertEqual(self.dispatcher.sent_count, 1)
        self.assertEqual(self.messages, ["COMMAND SENT: A"])

    def test_custom_terminator(self):
        dispatcher = CommandDispatcher(self.link, state=lambda: LinkState.CONNECTED,
                                       terminator="", min_send_interval=0.0)
        dispatcher.send(Command.SAFE)
        self.link.write.assert_called_once_with(b"S")

    def test_not_connected_states(self):
        for state in (LinkState.CONNECTING, LinkState.DISCONNECTED, LinkState.ERRORED):
            self.state = state
            with self.assertRaises(NotConnected):
                self.dispatcher.send(Command.LAUNCH)
        self.link.write.assert_not_called()
        self.assertEqual(self.messages, [])
        self.assertEqual(self.dispatcher.sent_count, 0)

    def test_launch_emits_notice(self):
        self.dispatcher.send(Command.LAUNCH)
        self.assertEqual(self.messages, ["COMMAND SENT: I", "LAUNCH SEQUENCE STARTED!"])

    def test_other_commands_have_no_launch_notice(self):
        for command in (Command.ARM, Command.SAFE, Command.TEST):
            self.dispatcher.send(command)
        self.assertNotIn("LAUNCH SEQUENCE STARTED!", self.messages)

    def test_write_failure_reported_and_raised(self):
        on_error = MagicMock()
        error = TransportError("boom")
        self.link.write.side_effect = error
        dispatcher = CommandDispatcher(self.link, state=lambda: LinkState.CONNECTED,
                                       min_send_interval=0.0, on_transport_error=on_error)

        with self.assertRaises(TransportError):
            dispatcher.send(Command.TEST)

        on_error.assert_called_once_with(error)
        self.assertEqual(dispatcher.sent_count, 0)

    def test_error_hook_runs_outside_write_lock(self):
        self.link.write.side_effect = TransportError("boom")
        lock_held = []
        resend = []

        def on_error(error):
            lock_held.append(dispatcher._write_lock.locked())
            self.link.write.side_effect = None
            dispatcher.send(Command.SAFE)
            resend.append(True)

        dispatcher = CommandDispatcher(self.link, state=lambda: LinkState.CONNECTED,
                                       min_send_interval=0.0, on_transport_error=on_error)

        with self.assertRaises(TransportError):
            dispatcher.send(Command.TEST)

        self.assertEqual(lock_held, [False])
        self.assertEqual(resend, [True])
        self.assertEqual(dispatcher.sent_count, 1)

    def test_notify_errors_do_not_break_send(self):
        dispatcher = CommandDispatcher(self.link, state=lambda: LinkState.CONNECTED,
                                       min_send_interval=0.0,
                                       notify=MagicMock(side_effect=RuntimeError("ui gone")))
        dispatcher.send(Command.ARM)
        self.link.write.assert_called_once()

    def test_rate_limiting(self):
        dispatcher = CommandDispatcher(self.link, state=lambda: LinkState.CONNECTED,
                                       min_send_interval=0.05)
        start = time.monotonic()
        dispatcher.send(Command.ARM)
        dispatcher.send(Command.SAFE)
        self.assertGreaterEqual(time.monotonic() - start, 0.045)


class TestCommandDispatcherSerialization(unittest.TestCase):
    """Concurrent sends never overlap on the link."""

    def test_single_write_in_flight(self):
        in_flight = []
        overlaps = []
        writes = []
        lock = threading.Lock()
        link = MagicMock(spec=Link)

        def slow_write(data):
            with lock:
                in_flight.append(data)
                if len(in_flight) > 1:
                    overlaps.append(list(in_flight))
            time.sleep(0.005)
            with lock:
                in_flight.remove(data)
                writes.append(data)

        link.write.side_effect = slow_write
        dispatcher = CommandDispatcher(link, state=lambda: LinkState.CONNECTED,
                                       min_send_interval=0.0)

        threads = [
            threading.Thread(target=dispatcher.send, args=(command,))
            for command in list(Command) * 5
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(overlaps, [])
        self.assertEqual(len(writes), 20)
        self.assertEqual(dispatcher.sent_count, 20)


if __name__ == '__main__':
    unittest.main()
