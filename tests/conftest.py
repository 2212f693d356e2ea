from typing import List, Optional

import pytest

import eventhub_sender.eventhub_client as eventhub_client
from eventhub_sender.config import ConnectionConfig


class FakeEventDataBatch:
    """Stands in for azure.eventhub.EventDataBatch; holds at most max_events events."""

    def __init__(self, max_events: int = 10) -> None:
        self.max_events = max_events
        self.max_size_in_bytes = 1024 * 1024
        self.events = []

    @property
    def size_in_bytes(self) -> int:
        return sum(len(e.body_as_str()) for e in self.events)

    def add(self, event) -> None:
        if len(self.events) >= self.max_events:
            raise ValueError("EventDataBatch has reached its size limit")
        self.events.append(event)

    def __len__(self) -> int:
        return len(self.events)


class FakeProducer:
    """Records calls made by EventHubPublisher; each step can be told to fail."""

    def __init__(self, conn_str: str, eventhub_name: str, *, properties_error: Optional[Exception] = None,
                 create_batch_error: Optional[Exception] = None, send_error: Optional[Exception] = None,
                 max_events: int = 10) -> None:
        self.conn_str = conn_str
        self.eventhub_name = eventhub_name
        self.properties_error = properties_error
        self.create_batch_error = create_batch_error
        self.send_error = send_error
        self.max_events = max_events
        self.batches_created = 0
        self.sent_batches = []
        self.close_calls = 0

    async def get_eventhub_properties(self):
        if self.properties_error:
            raise self.properties_error
        return {"eventhub_name": self.eventhub_name, "partition_ids": ["0", "1"]}

    async def create_batch(self):
        if self.create_batch_error:
            raise self.create_batch_error
        self.batches_created += 1
        return FakeEventDataBatch(self.max_events)

    async def send_batch(self, batch):
        if self.send_error:
            raise self.send_error
        self.sent_batches.append(batch)

    async def close(self):
        self.close_calls += 1


@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(
        endpoint="sb://localhost",
        hub_name="eh1",
        credential="SAS_KEY_VALUE",
        use_development_emulator=True,
    )


@pytest.fixture
def fake_producer(monkeypatch):
    """
    Patch EventHubProducerClient in the client module.

    Returns a configure(**kwargs) callable; the options apply to producers created
    afterwards and every created producer is appended to the returned list.
    """
    created: List[FakeProducer] = []
    options = {}

    class _FakeProducerClient:
        @classmethod
        def from_connection_string(cls, conn_str, eventhub_name=None, **kwargs):
            if "Endpoint=" not in conn_str:
                raise ValueError("Connection string is either blank or malformed.")
            producer = FakeProducer(conn_str, eventhub_name, **options)
            created.append(producer)
            return producer

    monkeypatch.setattr(eventhub_client, "EventHubProducerClient", _FakeProducerClient)

    def configure(**kwargs):
        options.update(kwargs)
        return created

    return configure
