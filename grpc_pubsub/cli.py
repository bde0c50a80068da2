"""Command-line entry points for the broker, the consumer and the publisher."""

import argparse
import sys
import threading

from grpc_pubsub.broker import Broker
from grpc_pubsub.consumer import Consumer
from grpc_pubsub.logger import new_logger
from grpc_pubsub.publisher import Publisher
from grpc_pubsub.server import Server

DEFAULT_ADDR = "localhost:8080"
CHAT_TOPIC = "group:chat"
CHAT_PROMPT = "Type messages (press Enter to send, 'quit' to exit): "
USERNAME_PROMPT = "Enter your username: "


def _parse_args(argv, description):
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--addr", default=DEFAULT_ADDR, help=f"broker address (default {DEFAULT_ADDR})"
    )
    return parser.parse_args(argv)


def chat_loop(publisher, username, lines, prompt=CHAT_PROMPT):
    """Publish each line as ``username: text`` to the chat topic until 'quit'.

    Returns the number of messages published.
    """
    sent = 0
    lines = iter(lines)
    while True:
        print(prompt, end="", flush=True)
        text = next(lines, None)
        if text is None:
            break
        print(file=sys.stderr)
        if text == "quit":
            break
        publisher.publish(CHAT_TOPIC, f"{username}: {text}".encode("utf-8"))
        sent += 1
    return sent


def _stdin_lines():
    for line in sys.stdin:
        yield line.rstrip("\r\n")


def broker_main(argv=None):
    """Run the broker until interrupted."""
    args = _parse_args(argv, "Run the PubSub broker.")
    logger = new_logger("grpc-pubsub:broker")
    server = Server(args.addr, logger)
    broker = Broker(server.shutdown, logger)
    try:
        server.listen_and_serve(broker)
    except OSError as exc:
        logger.info("listen error", error=str(exc))
        return 1
    return 0


def consumer_main(argv=None):
    """Subscribe to the chat topic and log its messages until interrupted."""
    args = _parse_args(argv, "Subscribe to the chat topic.")
    logger = new_logger("grpc-pubsub:consumer")
    try:
        consumer = Consumer(logger, args.addr)
    except ConnectionError as exc:
        logger.fatal("create consumer error", error=str(exc))

    try:
        consumer.subscribe(CHAT_TOPIC)
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        consumer.close()
    return 0


def publisher_main(argv=None):
    """Read a username and chat lines from standard input and publish them."""
    args = _parse_args(argv, "Publish chat messages.")
    logger = new_logger("grpc-pubsub:publisher")
    try:
        publisher = Publisher(logger, args.addr)
    except ConnectionError as exc:
        logger.fatal("create publisher error", error=str(exc))

    with publisher:
        print(USERNAME_PROMPT, end="", flush=True)
        username = sys.stdin.readline().rstrip("\r\n")
        chat_loop(publisher, username, _stdin_lines())
    return 0