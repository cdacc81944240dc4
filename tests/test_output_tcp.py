import socket
import threading

import pytest

from tsar.debug import FatalError
from tsar.output_tcp import output_multi_tcp, send_data_tcp, str2sa


def start_server():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    received = []

    def serve():
        conn, _ = srv.accept()
        with conn:
            chunks = []
            while True:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        received.append(b"".join(chunks))

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    return srv, srv.getsockname()[1], received, thread


def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def test_str2sa_numeric_address():
    assert str2sa("127.0.0.1:8080") == ("127.0.0.1", 8080)


@pytest.mark.parametrize("text", ["*:9", ":9"])
def test_str2sa_any_address(text):
    assert str2sa(text) == ("0.0.0.0", 9)


def test_str2sa_without_port():
    assert str2sa("10.1.2.3") == ("10.1.2.3", 0)


def test_str2sa_port_wraps_to_sixteen_bits():
    assert str2sa("10.1.2.3:-1")[1] == 0xFFFF


def test_str2sa_resolves_names(monkeypatch):
    monkeypatch.setattr(socket, "gethostbyname", lambda name: "192.0.2.7")
    assert str2sa("collector.example.com:4000") == ("192.0.2.7", 4000)


def test_str2sa_unknown_name_is_fatal(monkeypatch):
    def fail(name):
        raise socket.gaierror("no such host")

    monkeypatch.setattr(socket, "gethostbyname", fail)
    with pytest.raises(FatalError):
        str2sa("nowhere.example.com:4000")


def test_send_data_tcp_delivers_payload():
    srv, port, received, thread = start_server()
    try:
        assert send_data_tcp(f"127.0.0.1:{port}", "host\ttsar\tcpu:util=1.0 \n") is True
        thread.join(timeout=5)
        assert received == [b"host\ttsar\tcpu:util=1.0 \n"]
    finally:
        srv.close()


def test_send_data_tcp_empty_payload_connects_only():
    srv, port, received, thread = start_server()
    try:
        assert send_data_tcp(f"127.0.0.1:{port}", b"") is True
        thread.join(timeout=5)
        assert received == [b""]
    finally:
        srv.close()


def test_send_data_tcp_refused():
    assert send_data_tcp(f"127.0.0.1:{closed_port()}", b"data") is False


def test_output_multi_tcp_sends_to_each_address():
    first = start_server()
    second = start_server()
    try:
        addresses = [
            f"127.0.0.1:{first[1]}",
            f"127.0.0.1:{closed_port()}",
            f"127.0.0.1:{second[1]}",
        ]
        assert output_multi_tcp(addresses, b"payload") == 2
        first[3].join(timeout=5)
        second[3].join(timeout=5)
        assert first[2] == [b"payload"]
        assert second[2] == [b"payload"]
    finally:
        first[0].close()
        second[0].close()


def test_output_multi_tcp_without_addresses():
    assert output_multi_tcp([], b"payload") == 0