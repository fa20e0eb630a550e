"""Unit tests for SerialLink (pyserial wrapper)."""

import unittest
from unittest.mock import MagicMock, patch

import serial

from groundstation.errors import PortNotFoundError, TransportError, TransportUnavailable
from groundstation.link.finder import PortInfo
from groundstation.link.serial import SerialLink


class TestSerialLinkInit(unittest.TestCase):
    """Tests for SerialLink initialization."""

    def test_init_defaults(self):
        link = SerialLink()

        self.assertIsNone(link.port)
        self.assertEqual(link._baudrate, 9600)
        self.assertEqual(link._timeout, 0.1)
        self.assertEqual(link._chunk_size, 4096)
        self.assertFalse(link.is_open())
        self.assertEqual(link.description, "auto")

    def test_init_custom_params(self):
        link = SerialLink(port="/dev/ttyUSB5", baudrate=115200, timeout=0.5, chunk_size=64)

        self.assertEqual(link.port, "/dev/ttyUSB5")
        self.assertEqual(link._baudrate, 115200)
        self.assertEqual(link._timeout, 0.5)
        self.assertEqual(link._chunk_size, 64)


class TestSerialLinkOpen(unittest.TestCase):
    """Tests for opening and closing the port."""

    @patch('groundstation.link.serial.serial.Serial')
    def test_open_explicit_port(self, mock_serial_class):
        mock_serial = MagicMock()
        mock_serial_class.return_value = mock_serial

        link = SerialLink(port="/dev/ttyACM0")
        link.open()

        self.assertTrue(link.is_open())
        mock_serial_class.assert_called_once_with(
            port="/dev/ttyACM0",
            baudrate=9600,
            timeout=0.1
        )
        mock_serial.reset_input_buffer.assert_called_once()
        mock_serial.reset_output_buffer.assert_called_once()

    @patch('groundstation.link.serial.find_single_port')
    @patch('groundstation.link.serial.serial.Serial')
    def test_open_auto_detect(self, mock_serial_class, mock_find):
        mock_find.return_value = PortInfo(
            port="/dev/ttyACM1",
            vid=0x2341,
            pid=0x0043,
            manufacturer="Arduino",
            product="Uno",
            serial_number="123",
            hwid="USB VID:PID=2341:0043",
        )

        link = SerialLink(expected_vid=0x2341)
        link.open()

        mock_find.assert_called_once_with(expected_vid=0x2341)
        self.assertEqual(link.port, "/dev/ttyACM1")

    @patch('groundstation.link.serial.find_single_port')
    def test_open_auto_detect_not_found(self, mock_find):
        mock_find.side_effect = PortNotFoundError("No matching serial port found")

        link = SerialLink()
        with self.assertRaises(TransportUnavailable):
            link.open()
        self.assertFalse(link.is_open())

    @patch('groundstation.link.serial.serial.Serial')
    def test_open_serial_exception(self, mock_serial_class):
        mock_serial_class.side_effect = serial.SerialException("Port not found")

        link = SerialLink(port="/dev/ttyUSB99")
        with self.assertRaises(TransportUnavailable):
            link.open()
        self.assertFalse(link.is_open())

    @patch('groundstation.link.serial.serial.Serial')
    def test_open_already_open(self, mock_serial_class):
        link = SerialLink(port="/dev/ttyACM0")
        link.open()
        link.open()
        mock_serial_class.assert_called_once()

    @patch('groundstation.link.serial.serial.Serial')
    def test_close_is_idempotent(self, mock_serial_class):
        mock_serial = MagicMock()
        mock_serial_class.return_value = mock_serial

        link = SerialLink(port="/dev/ttyACM0")
        link.open()
        link.close()
        link.close()

        mock_serial.close.assert_called_once()
        self.assertFalse(link.is_open())

    @patch('groundstation.link.serial.serial.Serial')
    def test_context_manager(self, mock_serial_class):
        with SerialLink(port="/dev/ttyACM0") as link:
            self.assertTrue(link.is_open())
        self.assertFalse(link.is_open())


class TestSerialLinkIO(unittest.TestCase):
    """Tests for chunk reads and writes."""

    def setUp(self):
        self.patcher = patch('groundstation.link.serial.serial.Serial')
        self.mock_serial_class = self.patcher.start()
        self.mock_serial = MagicMock()
        self.mock_serial_class.return_value = self.mock_serial
        self.link = SerialLink(port="/dev/ttyACM0", chunk_size=128)
        self.link.open()

    def tearDown(self):
        self.patcher.stop()

    def test_read_chunk(self):
        self.mock_serial.read.return_value = b"Thrust:1.0\n"
        self.assertEqual(self.link.read_chunk(), b"Thrust:1.0\n")
        self.mock_serial.read.assert_called_once_with(128)

    def test_read_timeout_is_empty(self):
        self.mock_serial.read.return_value = b""
        self.assertEqual(self.link.read_chunk(), b"")

    def test_read_after_close_is_end_of_stream(self):
        self.link.close()
        self.assertIsNone(self.link.read_chunk())

    def test_read_error(self):
        self.mock_serial.read.side_effect = serial.SerialException("Device disconnected")
        with self.assertRaises(TransportError):
            self.link.read_chunk()

    def test_write(self):
        self.link.write(b"A\n")
        self.mock_serial.write.assert_called_once_with(b"A\n")
        self.mock_serial.flush.assert_called_once()

    def test_write_error(self):
        self.mock_serial.write.side_effect = serial.SerialException("Write timeout")
        with self.assertRaises(TransportError):
            self.link.write(b"A\n")

    def test_write_when_closed(self):
        self.link.close()
        with self.assertRaises(TransportError):
            self.link.write(b"A\n")
        self.mock_serial.write.assert_not_called()


if __name__ == '__main__':
    unittest.main()
