import json

from effective_membership.__main__ import build_config, parse_args
from effective_membership.config import DEFAULT_MAX_DEPTH, EngineConfig

from conftest import GROUP_G


def test_defaults():
    config = EngineConfig()

    assert config.auth.mode == "certificate"
    assert config.traversal.max_depth == DEFAULT_MAX_DEPTH == 10
    assert config.traversal.include_disabled is False
    assert config.traversal.max_retries == 3
    assert config.traversal.base_delay_seconds == 1.0
    assert config.output.formats == ["json", "csv"]
    assert "effective_membership_" in config.output.base_dir


def test_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "auth": {
            "mode": "secret",
            "secret": {"tenant_id": "t", "client_id": "c", "client_secret": "s"},
        },
        "traversal": {"max_depth": 4, "include_disabled": True, "unknown": 1},
        "output": {"base_dir": str(tmp_path / "out"), "formats": ["json"]},
        "verbose": True,
    }))

    config = EngineConfig.from_file(path)

    assert config.auth.mode == "secret"
    assert config.auth.secret.client_secret == "s"
    assert config.traversal.max_depth == 4
    assert config.traversal.include_disabled is True
    assert not hasattr(config.traversal, "unknown")
    assert config.output.formats == ["json"]
    assert config.verbose is True


def test_cli_overrides(tmp_path):
    args = parse_args([
        "--group-id", GROUP_G,
        "--tenant-id", "tenant",
        "--client-id", "client",
        "--cert-path", "cert.txt",
        "--max-depth", "3",
        "--include-disabled",
        "--include-group-info",
        "--output-dir", str(tmp_path),
        "--formats", "csv",
    ])

    config = build_config(args)

    assert config.auth.certificate.tenant_id == "tenant"
    assert config.auth.certificate.certificate_path == "cert.txt"
    assert config.traversal.max_depth == 3
    assert config.traversal.include_disabled is True
    assert config.traversal.include_group_info is True
    assert config.output.base_dir == str(tmp_path)
    assert config.output.formats == ["csv"]


def test_cli_delegated_mode():
    args = parse_args([
        "--group-name", "Engineering", "--delegated",
        "--tenant-id", "tenant", "--client-id", "client",
    ])

    config = build_config(args)

    assert config.auth.mode == "delegated"
    assert config.auth.delegated.client_id == "client"
    assert config.traversal.max_depth == DEFAULT_MAX_DEPTH
