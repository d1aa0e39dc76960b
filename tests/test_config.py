from __future__ import annotations

import ssl
from pathlib import Path

import pytest
import trustme

from actorbus.config import BusConfig, TlsConfig, discover_config, load_config


class TestBusConfig:
    def test_defaults(self) -> None:
        cfg = BusConfig()
        assert cfg.host == "0.0.0.0"
        assert cfg.port == 5000
        assert cfg.codec == "json"
        assert cfg.forward_codec_errors is False
        assert cfg.log_level == "INFO"
        assert cfg.tls is None

    def test_frozen(self) -> None:
        cfg = BusConfig()
        with pytest.raises(AttributeError):
            cfg.port = 42  # type: ignore[misc]


class TestDiscoverConfig:
    def test_finds_file_in_start_dir(self, tmp_path: Path) -> None:
        (tmp_path / "actorbus.toml").write_text("")
        assert discover_config(tmp_path) == (tmp_path / "actorbus.toml").resolve()

    def test_walks_up(self, tmp_path: Path) -> None:
        (tmp_path / "actorbus.toml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert discover_config(nested) == (tmp_path / "actorbus.toml").resolve()

    def test_missing_returns_none(self, tmp_path: Path) -> None:
        assert discover_config(tmp_path) is None


class TestLoadConfig:
    def test_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / "actorbus.toml"
        path.write_text(
            """
[bus]
host = "127.0.0.1"
port = 6000
codec = "msgpack"
forward_codec_errors = true

[logging]
level = "debug"
"""
        )
        cfg = load_config(path)
        assert cfg == BusConfig(
            host="127.0.0.1",
            port=6000,
            codec="msgpack",
            forward_codec_errors=True,
            log_level="DEBUG",
        )

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "actorbus.toml"
        path.write_text("")
        assert load_config(path) == BusConfig()

    def test_explicit_missing_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_unknown_codec_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "actorbus.toml"
        path.write_text('[bus]\ncodec = "xml"\n')
        with pytest.raises(ValueError, match="xml"):
            load_config(path)

    def test_discovered_from_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "actorbus.toml").write_text("[bus]\nport = 7001\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().port == 7001

    def test_tls_section(self, tmp_path: Path) -> None:
        ca = trustme.CA()
        cert = ca.issue_cert("127.0.0.1")
        cert_path = tmp_path / "node.pem"
        ca_path = tmp_path / "ca.pem"
        cert.private_key_and_cert_chain_pem.write_to_path(str(cert_path))
        ca.cert_pem.write_to_path(str(ca_path))

        path = tmp_path / "actorbus.toml"
        path.write_text(f'[tls]\ncertfile = "{cert_path}"\ncafile = "{ca_path}"\n')
        cfg = load_config(path)
        assert isinstance(cfg.tls, TlsConfig)
        assert cfg.tls.server_context is not cfg.tls.client_context

    def test_tls_contexts_require_peer_certificates(self, tmp_path: Path) -> None:
        ca = trustme.CA()
        cert_path = tmp_path / "node.pem"
        ca_path = tmp_path / "ca.pem"
        ca.issue_cert("127.0.0.1").private_key_and_cert_chain_pem.write_to_path(str(cert_path))
        ca.cert_pem.write_to_path(str(ca_path))

        tls = TlsConfig.from_paths(certfile=str(cert_path), cafile=str(ca_path))
        assert tls.server_context.verify_mode == ssl.CERT_REQUIRED
        assert tls.client_context.verify_mode == ssl.CERT_REQUIRED
        assert tls.client_context.check_hostname
