"""
Event Hub Client - Single message publisher
Connects to one Event Hub, sends one batch, and always releases the connection
"""

import logging
from typing import Any, Dict, Optional

from azure.eventhub import EventData
from azure.eventhub.aio import EventHubProducerClient
from azure.eventhub.exceptions import EventHubError

from eventhub_sender.config import ConnectionConfig
from eventhub_sender.message import TestMessage

logger = logging.getLogger(__name__)


class EventHubClientError(Exception):
    """Raised when Event Hub operations fail"""
    pass


class EventHubConnectionError(EventHubClientError):
    """Malformed credential or unreachable endpoint"""
    pass


class BatchCreationError(EventHubClientError):
    """Connection not ready for a new batch"""
    pass


class SendError(EventHubClientError):
    """Transmission, authentication or hub-not-found failure"""
    pass


class BatchSealedError(EventHubClientError):
    """Batch was already sent and cannot be changed or sent again"""
    pass


class MessageTooLargeError(EventHubClientError):
    """Message does not fit into an empty batch"""
    pass


class Batch:
    """
    Outbound batch owned by one publish operation.
    Sent at most once; no changes after it is sent.
    """

    def __init__(self, event_batch):
        self._event_batch = event_batch
        self._messages = []
        self.sent = False

    @property
    def event_batch(self):
        """The SDK EventDataBatch handed to send_batch"""
        return self._event_batch

    @property
    def messages(self):
        return list(self._messages)

    @property
    def size_in_bytes(self) -> int:
        return self._event_batch.size_in_bytes

    def __len__(self) -> int:
        return len(self._messages)

    def add(self, message: TestMessage) -> bool:
        """Append message; False when it does not fit"""
        if self.sent:
            raise BatchSealedError("Cannot add to a batch that was already sent")

        try:
            self._event_batch.add(EventData(message.to_json()))
        except ValueError:
            return False

        self._messages.append(message)
        return True


class EventHubPublisher:
    """
    Asynchronous Azure Event Hub publisher for a single hub

    Usage:
        async with EventHubPublisher(connection_config) as publisher:
            batch = await publisher.create_batch()
            publisher.add_message(batch, message)
            await publisher.send(batch)
    """

    def __init__(self, connection_config: ConnectionConfig):
        self.connection_config = connection_config
        self._producer: Optional[EventHubProducerClient] = None
        self.hub_properties: Dict[str, Any] = {}
        self.closed = False

        logger.info(f"EventHubPublisher initialized for hub '{connection_config.hub_name}'")

    @property
    def ready(self) -> bool:
        return self._producer is not None and not self.closed

    async def connect(self) -> 'EventHubPublisher':
        """
        Open a session to the hub

        Raises:
            EventHubConnectionError: Malformed credential or unreachable endpoint
        """
        if self.ready:
            return self
        if self.closed:
            raise EventHubConnectionError("Publisher has been closed")

        hub_name = self.connection_config.hub_name
        try:
            producer = EventHubProducerClient.from_connection_string(
                conn_str=self.connection_config.connection_string(),
                eventhub_name=hub_name
            )
        except (ValueError, TypeError) as e:
            logger.error(f"Invalid Event Hub connection string: {e}")
            raise EventHubConnectionError(f"Invalid connection string: {e}") from e

        # The producer is lazy; fetching hub properties opens the link
        try:
            self.hub_properties = await producer.get_eventhub_properties()
        except Exception as e:
            if isinstance(e, EventHubError):
                logger.error(f"Failed to connect to Event Hub '{hub_name}': {e}")
            else:
                logger.error(f"Unexpected error connecting to Event Hub '{hub_name}': {e}", exc_info=True)
            await self._close_producer(producer)
            raise EventHubConnectionError(f"Failed to connect to '{hub_name}': {e}") from e

        self._producer = producer
        partitions = self.hub_properties.get('partition_ids', [])
        logger.info(f"Connected to Event Hub '{hub_name}' ({len(partitions)} partition(s))")
        return self

    async def create_batch(self) -> Batch:
        """
        Allocate an empty batch sized to the hub's limits

        Raises:
            BatchCreationError: If the connection is not ready
        """
        if not self.ready:
            raise BatchCreationError("Connection is not ready")

        try:
            event_batch = await self._producer.create_batch()
        except EventHubError as e:
            logger.error(f"Event Hub error while creating batch: {e}")
            raise BatchCreationError(f"Batch creation failed: {e}") from e
        except Exception as e:
            logger.error(f"Unexpected error while creating batch: {e}", exc_info=True)
            raise BatchCreationError(f"Unexpected error: {e}") from e

        logger.debug(f"Batch created (max size {event_batch.max_size_in_bytes} bytes)")
        return Batch(event_batch)

    def add_message(self, batch: Batch, message: TestMessage) -> bool:
        """
        Append message to batch

        Returns:
            True if it fit, False if the batch is full
        """
        if not batch.add(message):
            logger.debug(f"Batch full at {len(batch)} message(s)")
            return False
        return True

    async def send(self, batch: Batch):
        """
        Send the batch; all its messages are delivered together or none are

        Raises:
            SendError: Transmission, authentication or hub-not-found failure
        """
        if batch.sent:
            raise BatchSealedError("Batch has already been sent")
        if not self.ready:
            raise SendError("Connection is not ready")

        try:
            await self._producer.send_batch(batch.event_batch)
        except EventHubError as e:
            logger.error(f"Event Hub error while sending batch: {e}")
            raise SendError(f"Event Hub batch send failed: {e}") from e
        except Exception as e:
            logger.error(f"Unexpected error while sending batch to Event Hub: {e}", exc_info=True)
            raise SendError(f"Unexpected error: {e}") from e

        batch.sent = True
        logger.info(f"Batch sent: {len(batch)} event(s) to '{self.connection_config.hub_name}'")

    async def close(self):
        """Release the session. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        producer, self._producer = self._producer, None
        if producer is not None:
            await self._close_producer(producer)
            logger.info("Event Hub producer closed")

    @staticmethod
    async def _close_producer(producer: EventHubProducerClient):
        try:
            await producer.close()
        except Exception as e:
            logger.warning(f"Error closing Event Hub producer: {e}")

    async def __aenter__(self):
        """Context manager entry"""
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        await self.close()
