"""
Event Hub Test Sender
Sends one test message to an Event Hub so a downstream trigger can be checked by hand
"""

import argparse
import asyncio
import logging
import random
import sys
from typing import Callable, Optional

from eventhub_sender.config import Config, ConnectionConfig, ConfigurationError
from eventhub_sender.eventhub_client import EventHubClientError, EventHubPublisher, MessageTooLargeError
from eventhub_sender.message import DEFAULT_MESSAGE_TEXT, TestMessage, build_test_message

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SEND_FAILED = 1
EXIT_CONFIG_ERROR = 2

DEFAULT_CONFIG_PATH = "config.yaml"


async def send_test_message(
    connection_config: ConnectionConfig,
    text: str = DEFAULT_MESSAGE_TEXT,
    rng: Optional[random.Random] = None,
    publisher_factory: Callable[[ConnectionConfig], EventHubPublisher] = EventHubPublisher,
    out=None,
    err=None,
) -> Optional[TestMessage]:
    """
    Connect, batch, add, send, close

    Failures at any step are reported on err and the connection is still released.

    Returns:
        The message that was sent, or None if publishing failed
    """
    out = out or sys.stdout
    err = err or sys.stderr

    print("🚀 Sending test message to Event Hub emulator...", file=out)

    try:
        async with publisher_factory(connection_config) as publisher:
            batch = await publisher.create_batch()

            message = build_test_message(text, rng=rng)
            if not publisher.add_message(batch, message):
                raise MessageTooLargeError(
                    f"Message does not fit into an empty batch ({batch.size_in_bytes} bytes used)"
                )

            await publisher.send(batch)

        print("✅ Message sent successfully!", file=out)
        print("📋 Message content:", message.to_json(indent=2), file=out)
        print("👀 Check your Azure Functions terminal for the trigger execution...", file=out)
        return message

    except EventHubClientError as e:
        logger.debug("Publish failed", exc_info=True)
        print("❌ Error sending message:", e, file=err)
        return None


def run_once(config: Config, text: Optional[str] = None, seed: Optional[int] = None) -> int:
    """Run one send from loaded configuration; returns a process exit code"""
    connection_config = ConnectionConfig.from_config(config)

    message_config = config.get('test_message', {})
    message_config = message_config.to_dict() if isinstance(message_config, Config) else (message_config or {})
    text = text or message_config.get('text') or DEFAULT_MESSAGE_TEXT
    if seed is None:
        seed = message_config.get('seed')
    rng = random.Random(seed) if seed is not None else None

    logger.info("="*80)
    logger.info(f"Event Hub Test Sender - {connection_config.endpoint} / {connection_config.hub_name}")
    logger.info("="*80)

    message = asyncio.run(send_test_message(connection_config, text=text, rng=rng))
    return EXIT_OK if message is not None else EXIT_SEND_FAILED


def setup_logging(level: str = "INFO", verbose: bool = False):
    """Log to stdout; keep the Azure SDK quiet unless verbose"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    if not verbose:
        logging.getLogger("azure").setLevel(logging.WARNING)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send one test message to an Azure Event Hub")
    parser.add_argument("--config", help=f"Path to YAML configuration file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--env", default=".env", help="Path to .env file")
    parser.add_argument("--message", help="Message text")
    parser.add_argument("--seed", type=int, help="Seed for the random test number")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    try:
        # Emulator defaults apply only when no config file was named
        config = Config.load(args.config or DEFAULT_CONFIG_PATH, args.env, required=args.config is not None)
        logging_config = config.get('logging', {})
        level = logging_config.get('level', 'INFO') if isinstance(logging_config, Config) else 'INFO'
        setup_logging(level, verbose=args.verbose)
        return run_once(config, text=args.message, seed=args.seed)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
