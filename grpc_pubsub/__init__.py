"""Topic-based publish/subscribe broker, gRPC server, clients and commands."""

__version__ = "0.1.0"

__all__ = ["broker", "cli", "consumer", "logger", "protocol", "publisher", "server"]