"""gRPC server hosting the PubSub service, with signal-driven shutdown."""

import signal
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import grpc

from grpc_pubsub.protocol import (
    SERVICE_NAME,
    PublishRequest,
    SubscribeRequest,
    UnsubscribeRequest,
    decode,
    encode,
)

_MAX_WORKERS = 64
_GRACE_SECONDS = 5.0
_WAIT_SECONDS = 0.2


def add_pubsub_service(grpc_server, service):
    """Register the Publish, Subscribe and Unsubscribe handlers of ``service``."""

    def handler(factory, method, request_cls):
        return factory(
            method,
            request_deserializer=partial(decode, request_cls),
            response_serializer=encode,
        )

    handlers = {
        "Publish": handler(grpc.unary_unary_rpc_method_handler, service.publish, PublishRequest),
        "Subscribe": handler(grpc.unary_stream_rpc_method_handler, service.subscribe, SubscribeRequest),
        "Unsubscribe": handler(
            grpc.unary_unary_rpc_method_handler, service.unsubscribe, UnsubscribeRequest
        ),
    }
    grpc_server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


class Server:
    """A gRPC server on one address; ``shutdown`` is set once it stops."""

    def __init__(self, addr, logger):
        self.addr = addr
        self.log = logger
        self.shutdown = threading.Event()
        self.ready = threading.Event()
        self.port = None
        self._grpc = None
        self._stopped = threading.Event()

    def start(self, service):
        """Bind, register ``service`` and start serving; return the bound port."""
        if self._grpc is not None:
            raise RuntimeError("server already started")

        self.log.info("creating grpc server", addr=self.addr)
        grpc_server = grpc.server(ThreadPoolExecutor(max_workers=_MAX_WORKERS))
        try:
            port = grpc_server.add_insecure_port(self.addr)
        except RuntimeError as exc:
            raise OSError(f"could not listen on {self.addr}") from exc
        if port == 0:
            raise OSError(f"could not listen on {self.addr}")
        self.log.info("grpc server created successfully", addr=self.addr)

        add_pubsub_service(grpc_server, service)
        self.log.info("pubsub service registered")

        self.log.info("starting grpc server", addr=self.addr)
        grpc_server.start()
        self._grpc = grpc_server
        self.port = port
        self.ready.set()
        return port

    def listen_and_serve(self, service):
        """Serve until SIGINT/SIGTERM or :meth:`stop`; return the signal received, if any."""
        self.start(service)
        received = []

        def on_signal(signum, _frame):
            received.append(signal.Signals(signum))
            self._stopped.set()

        previous = {}
        if threading.current_thread() is threading.main_thread():
            for sig in (signal.SIGINT, signal.SIGTERM):
                previous[sig] = signal.signal(sig, on_signal)
        try:
            while not self._stopped.wait(_WAIT_SECONDS):
                pass
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        self.shutdown.set()
        if not received:
            return None

        sig = received[0]
        self.log.info("shutting down server signal received", signal=sig.name)
        self._grpc.stop(_GRACE_SECONDS).wait()
        self.log.info("shutdown complete with signal", signal=sig.name)
        return sig

    def stop(self):
        """Cancel the broker context and stop the server gracefully."""
        if self._grpc is None:
            raise RuntimeError("server has not been started")
        self.shutdown.set()
        self.log.info("shutting down server", addr=self.addr)
        self._grpc.stop(_GRACE_SECONDS).wait()
        self.log.info("shutdown complete", addr=self.addr)
        self._stopped.set()