"""Topic-based broker that fans published payloads out to subscriber streams."""

import queue
import threading

import grpc

from grpc_pubsub.protocol import (
    PayloadStream,
    PublishResponse,
    ResponseStatus,
    UnsubscribeResponse,
    to_string,
)

_POLL_SECONDS = 0.1
_CLOSED = object()


class Subscriber:
    """One subscriber's outgoing stream of payloads."""

    def __init__(self, subscriber_id):
        self.subscriber_id = subscriber_id
        self._queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    def send(self, message):
        """Queue a message; raises ConnectionError once the stream is closed."""
        with self._lock:
            if self._closed:
                raise ConnectionError(f"stream of subscriber {self.subscriber_id} is closed")
            self._queue.put(message)

    def close(self):
        with self._lock:
            if not self._closed:
                self._closed = True
                self._queue.put(_CLOSED)

    def messages(self, is_active):
        """Yield queued messages while ``is_active()`` holds and the stream is open."""
        while is_active():
            try:
                item = self._queue.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                continue
            if item is _CLOSED:
                return
            yield item


class Broker:
    """PubSub service keeping subscribers per topic."""

    def __init__(self, shutdown, logger):
        self._shutdown = shutdown
        self._log = logger
        self._lock = threading.Lock()
        self._subscribers = {}

    def subscribers(self, topic):
        """Return the ids subscribed to ``topic``, in subscription order."""
        with self._lock:
            return [s.subscriber_id for s in self._subscribers.get(topic, [])]

    def publish(self, request, context):
        """Send the payload to every subscriber of the topic."""
        topic = request.topic
        self._log.info("publish request received", topic=topic)

        with self._lock:
            subscribers = self._subscribers.get(topic)
            subscribers = None if subscribers is None else list(subscribers)
        if subscribers is None:
            context.abort(grpc.StatusCode.NOT_FOUND, f"subscribers with {topic} topic doesn't exists")

        error_count = 0
        for subscriber in subscribers:
            fields = {"topic": topic, "subscriberId": subscriber.subscriber_id}
            self._log.info("sending payload stream", **fields)
            try:
                subscriber.send(PayloadStream(topic=topic, payload=request.payload))
            except ConnectionError:
                error_count += 1
                self._log.info("error send payload stream", **fields)
            else:
                self._log.info("send payload stream successful", **fields)

        if error_count > 0:
            context.abort(grpc.StatusCode.DATA_LOSS, f"failed to send payload to {error_count} streams")
        return PublishResponse(status=to_string(ResponseStatus.OK))

    def subscribe(self, request, context):
        """Register the subscriber and return the stream of its payloads."""
        fields = {"subscriberId": request.subscriber_id, "topic": request.topic}
        self._log.info("subscribe request received", **fields)

        with self._lock:
            current = self._subscribers.setdefault(request.topic, [])
            if any(s.subscriber_id == request.subscriber_id for s in current):
                subscriber = None
            else:
                subscriber = Subscriber(request.subscriber_id)
                current.append(subscriber)

        if subscriber is None:
            self._log.info("already subscribed to topic", **fields)
            return iter(())

        self._log.info("subscriber add to list", **fields)
        return self._stream(subscriber, context, fields)

    def _stream(self, subscriber, context, fields):
        try:
            yield from subscriber.messages(
                lambda: context.is_active() and not self._shutdown.is_set()
            )
        finally:
            subscriber.close()

        if self._shutdown.is_set():
            self._log.info("broker closed", **fields)
            context.abort(grpc.StatusCode.CANCELLED, "context canceled")
        self._log.info("stream ended", **fields)

    def unsubscribe(self, request, context):
        """Remove the subscriber from the topic."""
        fields = {"subscriberId": request.subscriber_id, "topic": request.topic}
        self._log.info("unsubscribe request received", **fields)

        with self._lock:
            current = self._subscribers.get(request.topic, [])
            found = next((s for s in current if s.subscriber_id == request.subscriber_id), None)
            if found is not None:
                current.remove(found)

        if found is None:
            self._log.info("subscriber not found", **fields)
            context.abort(
                grpc.StatusCode.NOT_FOUND,
                f"subscriber with id {request.subscriber_id} doesn't exists",
            )

        self._log.info("unsubscribed from topic", **fields)
        return UnsubscribeResponse(status=to_string(ResponseStatus.OK))