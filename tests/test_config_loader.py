"""Tests for configuration loading."""

import pytest

from ipamcheck.processors import RESERVED_HANDLE
from ipamcheck.utils import AppConfig, create_output_directories, load_config


def test_no_path_gives_in_cluster_defaults():
    config = load_config(None)

    assert config.kubernetes.api_server == "https://kubernetes.default.svc"
    assert config.kubernetes.token_file.endswith("serviceaccount/token")
    assert config.check.reserved_handle == RESERVED_HANDLE
    assert config.check.show_all_ips is False
    assert config.logging.level == "INFO"


def test_missing_file_raises():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/ipamcheck.yaml")


def test_env_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("KUBE_TOKEN", "tok-123")
    monkeypatch.setenv("API_HOST", "k8s.example")
    path = tmp_path / "config.yaml"
    path.write_text(
        "kubernetes:\n"
        "  api_server: https://${API_HOST}:6443/\n"
        "  token: $KUBE_TOKEN\n"
        "check:\n"
        "  show_problem_ips: true\n"
        "logging:\n"
        "  level: debug\n"
    )

    config = load_config(str(path))

    assert config.kubernetes.api_server == "https://k8s.example:6443"
    assert config.kubernetes.token == "tok-123"
    assert config.check.show_problem_ips is True
    assert config.logging.level == "DEBUG"


def test_unset_env_var_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("IPAMCHECK_UNSET_VAR", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("kubernetes:\n  token: ${IPAMCHECK_UNSET_VAR}\n")

    with pytest.raises(ValueError, match="IPAMCHECK_UNSET_VAR"):
        load_config(str(path))


@pytest.mark.parametrize("body", [
    "kubernetes:\n  api_server: k8s.example\n",
    "logging:\n  level: chatty\n",
    "retry:\n  max_attempts: 0\n",
    "kubernetes:\n  page_size: 0\n",
    "- not\n- a mapping\n",
])
def test_invalid_values_raise(tmp_path, body):
    path = tmp_path / "config.yaml"
    path.write_text(body)

    with pytest.raises(ValueError):
        load_config(str(path))


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(str(path)) == AppConfig()


def test_create_output_directories(tmp_path):
    config = AppConfig(output={'base_path': str(tmp_path / "out"), 'create_date_subfolder': False})

    export_path = create_output_directories(config)

    assert export_path == tmp_path / "out"
    assert export_path.is_dir()
