"""Messages, status values and the client stub of the PubSub service."""

import base64
import binascii
import enum
import json
from dataclasses import asdict, dataclass, fields
from functools import partial

SERVICE_NAME = "pubsub.PubSubService"


def method_path(name):
    """Return the full gRPC path of a PubSub method."""
    return f"/{SERVICE_NAME}/{name}"


class ResponseStatus(enum.IntEnum):
    UNSPECIFIED = 0
    OK = 1
    ERROR = 2


def to_string(status):
    """Return the wire name of a response status; unknown values are UNSPECIFIED."""
    if status == ResponseStatus.ERROR:
        return "ERROR"
    if status == ResponseStatus.OK:
        return "OK"
    return "UNSPECIFIED"


@dataclass(frozen=True)
class PublishRequest:
    topic: str = ""
    payload: bytes = b""


@dataclass(frozen=True)
class PublishResponse:
    status: str = ""


@dataclass(frozen=True)
class SubscribeRequest:
    subscriber_id: str = ""
    topic: str = ""


@dataclass(frozen=True)
class UnsubscribeRequest:
    subscriber_id: str = ""
    topic: str = ""


@dataclass(frozen=True)
class UnsubscribeResponse:
    status: str = ""


@dataclass(frozen=True)
class PayloadStream:
    topic: str = ""
    payload: bytes = b""


def encode(message):
    """Serialise a message to compact JSON bytes; byte fields are base64 encoded."""
    data = {
        name: base64.b64encode(value).decode("ascii") if isinstance(value, bytes) else value
        for name, value in asdict(message).items()
    }
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode(cls, data):
    """Build a message of type ``cls`` from bytes made by :func:`encode`."""
    try:
        raw = json.loads(data)
    except ValueError as exc:
        raise ValueError(f"malformed {cls.__name__}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"malformed {cls.__name__}: expected an object")

    values = {}
    for field in fields(cls):
        if field.name not in raw:
            continue
        value = raw[field.name]
        if not isinstance(value, str):
            raise ValueError(f"field {field.name!r} of {cls.__name__} must be a string")
        if field.type in (bytes, "bytes"):
            try:
                value = base64.b64decode(value, validate=True)
            except binascii.Error as exc:
                raise ValueError(f"field {field.name!r} is not valid base64") from exc
        values[field.name] = value
    return cls(**values)


class PubSubStub:
    """Client side of the PubSub service over a gRPC channel."""

    def __init__(self, channel):
        def method(kind, name, response_cls):
            return kind(
                method_path(name),
                request_serializer=encode,
                response_deserializer=partial(decode, response_cls),
            )

        self._publish = method(channel.unary_unary, "Publish", PublishResponse)
        self._subscribe = method(channel.unary_stream, "Subscribe", PayloadStream)
        self._unsubscribe = method(channel.unary_unary, "Unsubscribe", UnsubscribeResponse)

    def publish(self, request, timeout=None):
        return self._publish(request, timeout=timeout)

    def subscribe(self, request, timeout=None):
        """Open a stream of payloads; the returned call iterates and can be cancelled."""
        return self._subscribe(request, timeout=timeout)

    def unsubscribe(self, request, timeout=None):
        return self._unsubscribe(request, timeout=timeout)