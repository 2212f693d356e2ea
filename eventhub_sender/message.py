"""
Test message record sent to the Event Hub
"""

import json
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

DEFAULT_MESSAGE_TEXT = "Hello from test script - 1!"
TEST_NUMBER_LIMIT = 1000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC instant with millisecond precision, e.g. 2025-01-31T09:15:02.123Z"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass(frozen=True)
class TestMessage:
    """One test message. No headers, no partition key: only the body."""
    __test__ = False  # not a pytest test class

    message: str
    timestamp: str
    test_number: int

    def to_body(self) -> Dict[str, Any]:
        """Wire body: {message, timestamp, testNumber}"""
        return {
            'message': self.message,
            'timestamp': self.timestamp,
            'testNumber': self.test_number,
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_body(), indent=indent)


def build_test_message(
    text: str = DEFAULT_MESSAGE_TEXT,
    rng: Optional[random.Random] = None,
    clock: Callable[[], datetime] = utc_now,
) -> TestMessage:
    """
    Create a fresh test message stamped with the current time.

    Args:
        text: Message text
        rng: Random source for testNumber; a seeded random.Random makes it reproducible
        clock: Returns the current time

    Returns:
        TestMessage with test_number in [0, 1000)
    """
    rng = rng or random.Random()
    return TestMessage(
        message=text,
        timestamp=format_timestamp(clock()),
        test_number=rng.randrange(TEST_NUMBER_LIMIT),
    )
