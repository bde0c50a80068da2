import io

import pytest

from grpc_pubsub.cli import broker_main, chat_loop, consumer_main, publisher_main


class _FakePublisher:
    def __init__(self):
        self.sent = []

    def publish(self, topic, payload):
        self.sent.append((topic, payload))
        return True


def test_chat_loop_publishes_until_quit():
    publisher = _FakePublisher()
    count = chat_loop(publisher, "alice", ["hi", "there", "quit", "after"], "> ")
    assert count == 2
    assert publisher.sent == [
        ("group:chat", b"alice: hi"),
        ("group:chat", b"alice: there"),
    ]


def test_chat_loop_prompts_for_each_line(capsys):
    publisher = _FakePublisher()
    chat_loop(publisher, "bob", ["one", "quit"], "> ")
    out = capsys.readouterr().out
    assert out.count("> ") == 2


def test_chat_loop_stops_at_end_of_input():
    publisher = _FakePublisher()
    count = chat_loop(publisher, "carol", iter(["a", "b"]), "")
    assert count == len(publisher.sent) == 2
    assert publisher.sent[-1] == ("group:chat", b"carol: b")


def test_chat_loop_default_prompt(capsys):
    chat_loop(_FakePublisher(), "dave", ["quit"])
    out = capsys.readouterr().out
    assert out == "Type messages (press Enter to send, 'quit' to exit): "


def test_chat_loop_sends_empty_lines():
    publisher = _FakePublisher()
    chat_loop(publisher, "erin", ["", "quit"], "")
    assert publisher.sent == [("group:chat", b"erin: ")]


def test_publisher_main_quits_without_publishing(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("frank\nquit\n"))
    assert publisher_main(["--addr", "localhost:1"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Enter your username: ")


@pytest.mark.parametrize("main", [broker_main, consumer_main, publisher_main])
def test_unknown_option_is_rejected(main):
    with pytest.raises(SystemExit) as info:
        main(["--no-such-option"])
    assert info.value.code == 2