"""Client that subscribes to topics on a PubSub broker and reads their payloads."""

import queue
import threading
import uuid

import grpc

from grpc_pubsub.protocol import (
    PubSubStub,
    ResponseStatus,
    SubscribeRequest,
    UnsubscribeRequest,
    to_string,
)

_POLL_SECONDS = 0.1


def _failure_fields(exc):
    if isinstance(exc, grpc.Call):
        return {"statusCode": exc.code().name, "message": exc.details()}
    return {"error": str(exc)}


class Consumer:
    """A subscriber with its own id, connected to one broker."""

    def __init__(self, logger, broker_addr):
        logger.info("creating consumer client", brokerAddr=broker_addr)
        try:
            channel = grpc.insecure_channel(broker_addr)
        except (TypeError, ValueError) as exc:
            raise ConnectionError(f"create consumer client error : {exc}") from exc
        logger.info("consumer client connection established", brokerAddr=broker_addr)

        self.id = str(uuid.uuid4())
        self.log = logger
        self.received = queue.Queue()
        self._channel = channel
        self._stub = PubSubStub(channel)

    def subscribe(self, topic, cancel=None):
        """Subscribe to ``topic`` and read its payloads in a background thread.

        Setting the ``cancel`` event stops the read. Returns the reader thread,
        or None when the subscription could not be started.
        """
        self.log.info("subscribe request initiated", topic=topic, subscriberId=self.id)
        try:
            call = self._stub.subscribe(SubscribeRequest(subscriber_id=self.id, topic=topic))
        except grpc.RpcError as exc:
            self.log.info(
                "failed to subscribe", topic=topic, subscriberId=self.id, **_failure_fields(exc)
            )
            return None

        if cancel is None:
            cancel = threading.Event()
        reader = threading.Thread(
            target=self._read_from_stream, args=(call, cancel), daemon=True
        )
        reader.start()
        return reader

    def _read_from_stream(self, call, cancel):
        done = threading.Event()
        watcher = threading.Thread(
            target=self._watch_cancel, args=(call, cancel, done), daemon=True
        )
        watcher.start()
        try:
            for message in call:
                self.log.info(
                    "message received",
                    topic=message.topic,
                    payload=message.payload.decode("utf-8", errors="replace"),
                    subscriberId=self.id,
                )
                self.received.put(message)
        except grpc.RpcError as exc:
            if cancel.is_set():
                self.log.info("context cancelled - stopping stream read", subscriberId=self.id)
                self.log.info("stream closed after context cancellation", subscriberId=self.id)
            else:
                self.log.info(
                    "error receiving message from stream",
                    subscriberId=self.id,
                    **_failure_fields(exc),
                )
        else:
            self.log.info("stream closed by server", subscriberId=self.id)
        finally:
            done.set()

    @staticmethod
    def _watch_cancel(call, cancel, done):
        while not done.is_set():
            if cancel.wait(_POLL_SECONDS):
                call.cancel()
                return

    def unsubscribe(self, topic):
        """Leave ``topic``; return True when the broker confirmed it."""
        self.log.info("unsubscribe request initiated", topic=topic, subscriberId=self.id)
        try:
            response = self._stub.unsubscribe(
                UnsubscribeRequest(subscriber_id=self.id, topic=topic)
            )
        except grpc.RpcError as exc:
            self.log.info(
                "failed to unsubscribe", topic=topic, subscriberId=self.id, **_failure_fields(exc)
            )
            return False

        if response.status == to_string(ResponseStatus.ERROR):
            self.log.info("failed to unsubscribe", topic=topic, subscriberId=self.id)
            return False

        self.log.info("unsubscribed successfully", topic=topic, subscriberId=self.id)
        return True

    def close(self):
        """Close the connection to the broker."""
        self.log.info("closing consumer service", subscriberId=self.id)
        self._channel.close()
        self.log.info("closed consumer service successfully", subscriberId=self.id)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
        return False