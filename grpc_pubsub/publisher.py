"""Client that publishes payloads to topics on a PubSub broker."""

import grpc

from grpc_pubsub.protocol import PublishRequest, PubSubStub, ResponseStatus, to_string


class Publisher:
    """A publisher connected to one broker."""

    def __init__(self, logger, broker_addr):
        logger.info("creating publisher client", brokerAddr=broker_addr)
        try:
            channel = grpc.insecure_channel(broker_addr)
        except (TypeError, ValueError) as exc:
            raise ConnectionError(f"create client error : {exc}") from exc
        logger.info("publisher client connection established", brokerAddr=broker_addr)

        self.log = logger
        self._channel = channel
        self._stub = PubSubStub(channel)

    def publish(self, topic, payload):
        """Send ``payload`` to ``topic``; return True when the broker delivered it."""
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        self.log.info("publish request initiated", topic=topic)
        try:
            response = self._stub.publish(PublishRequest(topic=topic, payload=bytes(payload)))
        except grpc.RpcError as exc:
            if isinstance(exc, grpc.Call):
                self.log.info(
                    "failed to publish",
                    statusCode=exc.code().name,
                    message=exc.details(),
                    topic=topic,
                )
            else:
                self.log.info("failed to publish", error=str(exc), topic=topic)
            return False

        if response.status == to_string(ResponseStatus.ERROR):
            self.log.info("failed to publish", topic=topic)
            return False

        self.log.info("published successfully", topic=topic)
        return True

    def close(self):
        """Close the connection to the broker."""
        self.log.info("closing publisher service")
        self._channel.close()
        self.log.info("closed publisher service successfully")

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
        return False