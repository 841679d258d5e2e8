"""Shared fixtures: an in-memory stand-in for the pyserial port handle."""

import pytest

from serialgate.core.exceptions import PortClosedError, PortOpenError
from serialgate.serial.port import PortClosed


class FakePort:
    """Port handle double driven by the test instead of a device."""

    def __init__(self, config, on_data=None, on_error=None, on_close=None, read_timeout=0.1):
        self.config = config
        self.on_data = on_data
        self.on_error = on_error
        self.on_close = on_close
        self.read_timeout = read_timeout
        self.fail_open = None
        self.open_calls = 0
        self.close_calls = 0
        self.written = []
        self._open = False

    @property
    def path(self):
        return self.config.path

    @property
    def is_open(self):
        return self._open

    def open(self):
        self.open_calls += 1
        if self.fail_open:
            raise PortOpenError(self.fail_open)
        if self._open:
            raise PortOpenError(f"Port is already open: {self.path}")
        self._open = True

    def close(self):
        if not self._open:
            raise PortClosedError(f"Port is not open: {self.path}")
        self._open = False
        self.close_calls += 1
        self.on_close(PortClosed(disconnected=False))

    def write(self, data):
        if not self._open:
            raise PortClosedError(f"Port is not open: {self.path}")
        self.written.append(data)

    # --- test drivers ---

    def feed(self, data: bytes):
        self.on_data(data)

    def fail(self, exc: Exception):
        self.on_error(exc)

    def disconnect(self, message="Device has been disconnected"):
        self._open = False
        self.on_close(PortClosed(disconnected=True, message=message))


class FakePortFactory:
    """Port factory that remembers every handle it builds."""

    def __init__(self):
        self.created: list[FakePort] = []

    def __call__(self, config, **kwargs):
        port = FakePort(config, **kwargs)
        self.created.append(port)
        return port

    @property
    def last(self) -> FakePort:
        return self.created[-1]


@pytest.fixture
def port_factory():
    """Factory producing FakePort handles."""
    return FakePortFactory()
