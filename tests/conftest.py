import pytest

from netsdrclient import NetSdrClient, SampleQueueSink

from fakes import FakeTCP, FakeUDP


@pytest.fixture
def tcp():
    return FakeTCP()


@pytest.fixture
def udp():
    return FakeUDP()


@pytest.fixture
def sink():
    return SampleQueueSink()


@pytest.fixture
def client(tcp, udp, sink):
    return NetSdrClient(tcp=tcp, udp=udp, sample_sink=sink, response_timeout=1.0)
