import socket

import pytest

from badlopo.api import server
from badlopo.api.config import (
    BindError,
    InvalidEntryError,
    InvalidModeError,
    InvalidPortError,
    InvalidRootError,
    ResolutionMode,
    ServeError,
    ServerConfig,
    build_config,
)


@pytest.mark.parametrize("raw,expected", [
    ("single", ResolutionMode.SINGLE),
    ("Mixed", ResolutionMode.MIXED),
    ("DIRECT", ResolutionMode.DIRECT),
    (ResolutionMode.MIXED, ResolutionMode.MIXED),
])
def test_mode_parse_is_case_insensitive(raw, expected):
    assert ResolutionMode.parse(raw) is expected


def test_mode_parse_rejects_unknown():
    with pytest.raises(ValueError, match="invalid mode 'spa'"):
        ResolutionMode.parse("spa")


def test_build_config(site):
    config = build_config(root=site, entry="index.html", port=8080, mode="Direct")
    assert config == ServerConfig(root=site, entry=site / "index.html", mode=ResolutionMode.DIRECT, port=8080)
    assert config.root.is_absolute()


def test_config_is_frozen(site):
    config = build_config(root=site)
    with pytest.raises(AttributeError):
        config.mode = ResolutionMode.SINGLE


def test_entry_may_be_nested_or_absolute(site):
    assert build_config(root=site, entry="img/logo.png").entry == site / "img" / "logo.png"
    absolute = site / "index.html"
    assert build_config(root=site / "img", entry=absolute).entry == absolute


def test_root_must_be_a_directory(site):
    with pytest.raises(InvalidRootError, match=r"Invalid root \(root is not a directory\)"):
        build_config(root=site / "index.html")
    with pytest.raises(InvalidRootError):
        build_config(root=site / "nowhere")


def test_entry_must_be_a_file(site):
    with pytest.raises(InvalidEntryError, match=r"Invalid entry \(entry is not a file\)"):
        build_config(root=site, entry="missing.html")
    with pytest.raises(InvalidEntryError):
        build_config(root=site, entry="docs")


def test_root_is_checked_before_entry(tmp_path):
    with pytest.raises(InvalidRootError):
        build_config(root=tmp_path / "nowhere", entry="missing.html")


@pytest.mark.parametrize("port", [-1, 65536, "http", None])
def test_port_range(site, port):
    with pytest.raises(InvalidPortError):
        build_config(root=site, port=port)


def test_mode_is_validated(site):
    with pytest.raises(InvalidModeError, match="invalid mode 'spa'"):
        build_config(root=site, mode="spa")


def test_errors_share_a_base_class():
    for cls in (InvalidRootError, InvalidEntryError, InvalidPortError, InvalidModeError, BindError):
        assert issubclass(cls, ServeError)


def test_bind_socket_on_free_port():
    sock = server.bind_socket(0, host="127.0.0.1")
    try:
        host, port = sock.getsockname()[:2]
        assert host == "127.0.0.1"
        assert port > 0
    finally:
        sock.close()


def test_bind_socket_reports_port_in_use():
    busy = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    busy.bind(("127.0.0.1", 0))
    busy.listen(1)
    port = busy.getsockname()[1]
    try:
        with pytest.raises(BindError, match=f"Failed to bind 127.0.0.1:{port}"):
            server.bind_socket(port, host="127.0.0.1")
    finally:
        busy.close()


class FakeServer:
    instances = []

    def __init__(self, config):
        self.config = config
        self.sockets = None
        self.bound_to = None
        FakeServer.instances.append(self)

    def run(self, sockets=None):
        self.sockets = sockets
        self.bound_to = [s.getsockname()[0] for s in sockets]


def test_serve_hands_bound_socket_to_uvicorn(site, monkeypatch, capsys):
    FakeServer.instances.clear()
    monkeypatch.setattr(server.uvicorn, "Server", FakeServer)
    config = build_config(root=site, port=0, mode="single")

    server.serve(config, log_level="warning")

    (fake,) = FakeServer.instances
    assert len(fake.sockets) == 1
    assert fake.bound_to == ["0.0.0.0"]
    assert fake.sockets[0].fileno() == -1  # closed once the server returns
    assert fake.config.log_level == "warning"
    out = capsys.readouterr().out
    assert "BADLOPO SERVER ONLINE" in out
    assert "Mode:  single" in out


def test_serve_does_not_start_when_bind_fails(site, monkeypatch):
    FakeServer.instances.clear()
    monkeypatch.setattr(server.uvicorn, "Server", FakeServer)

    def refuse(port, host="0.0.0.0"):
        raise BindError(host, port, "Permission denied")

    monkeypatch.setattr(server, "bind_socket", refuse)
    with pytest.raises(BindError, match="Permission denied"):
        server.serve(build_config(root=site, port=80))
    assert FakeServer.instances == []
