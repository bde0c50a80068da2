# grpc-pubsub

A small topic-based publish/subscribe system over gRPC. It has three parts:

- a **broker** (`grpc_pubsub.broker.Broker`, hosted by
  `grpc_pubsub.server.Server`) that keeps track of subscribers per topic and
  forwards every published payload to all of them;
- a **consumer** (`grpc_pubsub.consumer.Consumer`) that subscribes to a topic
  and logs each message it receives;
- a **publisher** (`grpc_pubsub.publisher.Publisher`) that sends payloads to a
  topic.

All three log structured JSON lines (level, timestamp, caller, message,
service name, process id and key/value fields) to standard error.

## Installation

```
pip install .
```

## Running the chat demo

By default the commands talk to a broker at `localhost:8080`; each of them
takes `--addr HOST:PORT` to use another address. The chat topic is
`group:chat`.

Start the broker:

```
grpc-pubsub-broker
```

It serves until it receives SIGINT or SIGTERM, then shuts down gracefully and
ends every open subscription stream. If it cannot listen on the address it
logs a `listen error` and exits with status 1.

In another terminal, start one or more consumers:

```
grpc-pubsub-consumer
```

Each consumer gets a random subscriber id (a UUID), subscribes to
`group:chat` and logs every message that arrives, until interrupted with
Ctrl-C.

In a third terminal, start a publisher:

```
grpc-pubsub-publisher
```

It asks for a username, then sends each line you type as `username: text`.
Type `quit` (or end the input) to leave.

## Using the library

```python
import threading

from grpc_pubsub.logger import new_logger
from grpc_pubsub.consumer import Consumer
from grpc_pubsub.publisher import Publisher

log = new_logger("my-service")

stop = threading.Event()
with Consumer(log, "localhost:8080") as consumer:
    reader = consumer.subscribe("news", stop)   # background thread, or None on failure

    with Publisher(log, "localhost:8080") as publisher:
        delivered = publisher.publish("news", b"hello")   # True on success

    message = consumer.received.get(timeout=5)   # a PayloadStream
    print(message.topic, message.payload)

    consumer.unsubscribe("news")   # True when the broker confirmed it
    stop.set()                     # stops the reader thread
```

- `Publisher.publish(topic, payload)` accepts bytes or a string (encoded as
  UTF-8) and returns `True` when the broker answered `"OK"`; failures are
  logged and return `False`.
- `Consumer.subscribe(topic, cancel=None)` starts a daemon thread that reads
  the stream, logs each message and puts it on `Consumer.received`. Setting
  the `cancel` event cancels the stream.
- `Consumer.unsubscribe(topic)` returns `True` on success and `False` on
  failure.
- Both clients are context managers; `close()` closes the gRPC channel.

To run a broker from code, combine `Server` and `Broker`:

```python
from grpc_pubsub.logger import new_logger
from grpc_pubsub.server import Server
from grpc_pubsub.broker import Broker

log = new_logger("broker")
server = Server("localhost:8080", log)
broker = Broker(server.shutdown, log)
server.listen_and_serve(broker)
```

`Server.listen_and_serve(service)` blocks until SIGINT or SIGTERM (handlers
are installed only when called from the main thread) or until `Server.stop()`
is called, and returns the signal received, or `None`. `Server.start(service)`
starts serving without blocking and returns the bound port, so an address
such as `localhost:0` picks a free port. Both raise `OSError` when the address
cannot be bound. Once the server stops, its `shutdown` event is set, which
ends every open subscription stream of the broker with `CANCELLED`.

`grpc_pubsub.server.add_pubsub_service(grpc_server, service)` registers the
`Publish`, `Subscribe` and `Unsubscribe` handlers of any object with
`publish`, `subscribe` and `unsubscribe` methods on an existing `grpc.Server`.

## Broker behaviour

- Publishing to a topic that has never had a subscriber fails with
  `NOT_FOUND`. A topic whose subscribers have all left keeps an empty list, so
  publishing to it succeeds.
- If a payload cannot be delivered to some subscribers (their stream has
  ended), the call fails with `DATA_LOSS` and says how many streams failed.
- Subscribing twice with the same id to the same topic is a no-op; the second
  stream ends at once.
- Unsubscribing an id that is not subscribed fails with `NOT_FOUND`.
- Successful publish and unsubscribe calls answer with status `"OK"`.
- `Broker.subscribers(topic)` lists the subscriber ids of a topic in
  subscription order.

## Logging

`grpc_pubsub.logger.new_logger(service, *paths)` returns a
`StructuredLogger` whose `info(message, **fields)` writes one JSON object per
line. Each path may be `"stderr"`, `"stdout"` or a file name; with no paths it
writes to standard error. `fatal(message, **fields)` logs with a stack trace
and exits with status 1.

## Wire format

Messages (`grpc_pubsub.protocol`) are dataclasses sent as compact JSON, with
byte fields in base64, over the gRPC service `pubsub.PubSubService`
(`protocol.encode` / `protocol.decode`). The package does not use Protocol
Buffers, so it only talks to clients and brokers that use this same JSON
encoding. Connections are plain (insecure) gRPC channels; there is no TLS
option.

## Tests

```
pip install .[test]
pytest
```