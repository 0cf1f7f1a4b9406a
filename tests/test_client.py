from __future__ import annotations

from lockstep.client import Client
from lockstep.message import Kind, Message, Origin

from conftest import SERVER_ADDR


def make_client(endpoint, **kw) -> Client:
    return Client(endpoint, SERVER_ADDR, **kw)


def echo(no: int, retry: int = 0) -> Message:
    return Message.data(no, retry, Origin.SERVER)


def test_first_exchange_advances_to_two(endpoint):
    client = make_client(endpoint)
    endpoint.feed(echo(1))

    client.step()

    assert endpoint.sent == [(b'{"no":1,"retry":0,"from":"client","kind":"data"}', SERVER_ADDR)]
    assert client.ledger.seen == {1}
    assert client.seq == 2
    assert client.retry == 0
    assert not client.done


def test_timeout_retransmits_same_sequence(endpoint):
    client = make_client(endpoint)

    client.step()
    client.step()
    endpoint.feed(echo(1))
    client.step()

    sent = endpoint.sent_messages()
    assert [(m.no, m.retry) for m in sent] == [(1, 0), (1, 1), (1, 2)]
    assert client.seq == 2
    assert client.retry == 0
    assert client.stats.timeouts == 2
    assert client.stats.retransmits == 2


def test_malformed_reply_counts_as_retry(endpoint):
    client = make_client(endpoint)
    endpoint.feed(b"garbage")

    client.step()

    assert client.seq == 1
    assert client.retry == 1
    assert client.stats.decode_errors == 1
    assert client.ledger.seen == set()


def test_mismatched_sequence_is_recorded_but_does_not_advance(endpoint):
    client = make_client(endpoint)
    endpoint.feed(echo(2))

    client.step()

    assert client.ledger.seen == {2}
    assert client.seq == 1
    assert client.retry == 1
    assert client.stats.unexpected == 1


def test_reply_from_client_origin_does_not_advance(endpoint):
    client = make_client(endpoint)
    endpoint.feed(Message.data(1, 0, Origin.CLIENT))

    client.step()

    assert client.ledger.seen == {1}
    assert client.seq == 1
    assert client.retry == 1


def test_fin_from_server_is_unexpected_and_not_recorded(endpoint):
    client = make_client(endpoint)
    endpoint.feed(Message.fin(Origin.SERVER))

    client.step()

    assert client.ledger.seen == set()
    assert client.seq == 1
    assert client.retry == 1


def test_receive_socket_error_counts_as_retry(endpoint):
    client = make_client(endpoint)
    endpoint.feed(ConnectionRefusedError("refused"))

    client.step()

    assert client.seq == 1
    assert client.retry == 1
    assert client.stats.socket_errors == 1


def test_send_error_is_not_fatal(endpoint):
    client = make_client(endpoint)
    endpoint.send_error = OSError("network is unreachable")

    client.step()

    assert client.retry == 1
    assert client.stats.socket_errors == 1
    assert not client.done


def test_full_run_sends_single_fin_after_last_echo(endpoint):
    client = make_client(endpoint)
    for no in range(1, 101):
        endpoint.feed(echo(no))

    client.run()

    sent = endpoint.sent_messages()
    data = [m for m in sent if m.kind is Kind.DATA]
    fins = [m for m in sent if m.kind is Kind.FIN]
    assert [m.no for m in data] == list(range(1, 101))
    assert len(fins) == 1
    assert sent[-1] == Message.fin(Origin.CLIENT)
    assert client.done
    assert client.ledger.ranges_summary() == "1-100"


def test_never_advances_without_matching_echo(endpoint):
    client = make_client(endpoint, last_seq=3)
    endpoint.feed(echo(1))
    endpoint.feed(b"{}")
    endpoint.feed(echo(1, retry=1))
    endpoint.feed(echo(3))
    endpoint.feed(echo(2))
    endpoint.feed(echo(3))

    client.run()

    # each data send names the sequence the client is waiting on
    waiting = [m.no for m in endpoint.sent_messages() if m.kind is Kind.DATA]
    assert waiting == [1, 2, 2, 2, 2, 3]
    assert endpoint.sent_messages()[-1].is_fin


def test_terminated_client_sends_nothing(endpoint):
    client = make_client(endpoint, last_seq=1)
    endpoint.feed(echo(1))
    client.run()
    n = len(endpoint.sent)

    endpoint.feed(echo(1))
    client.step()

    assert len(endpoint.sent) == n
    assert len(endpoint.inbound) == 1


def test_deeply_nested_reply_counts_as_retry(endpoint):
    client = make_client(endpoint)
    endpoint.feed(b"[" * 1024)

    client.step()

    assert client.seq == 1
    assert client.retry == 1
    assert client.stats.decode_errors == 1


def test_echo_from_foreign_address_is_ignored(endpoint):
    client = make_client(endpoint)
    endpoint.feed(echo(1), ("10.9.9.9", 1234))
    endpoint.feed(echo(1))

    client.step()

    assert client.seq == 1
    assert client.retry == 1
    assert client.ledger.seen == set()
    assert client.stats.unexpected == 1

    client.step()

    assert client.seq == 2
    assert client.ledger.seen == {1}
