[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "grpc-pubsub"
version = "0.1.0"
description = "A small topic-based publish/subscribe broker over gRPC, with a publisher and a consumer client."
requires-python = ">=3.10"
keywords = ["grpc", "pubsub", "publish-subscribe", "broker", "messaging", "chat"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "grpcio",
]

[project.optional-dependencies]
test = [
    "pytest",
    "grpcio",
]

[project.scripts]
grpc-pubsub-broker = "grpc_pubsub.cli:broker_main"
grpc-pubsub-consumer = "grpc_pubsub.cli:consumer_main"
grpc-pubsub-publisher = "grpc_pubsub.cli:publisher_main"

[tool.hatch.build.targets.wheel]
packages = ["grpc_pubsub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
