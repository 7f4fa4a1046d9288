"""Tests for autocert.config: loading, env substitution and validation."""

from __future__ import annotations

import json
import logging

import pytest
import yaml

from autocert.authority.base import LETS_ENCRYPT_PRODUCTION, LETS_ENCRYPT_STAGING
from autocert.config.autocert_config import (
    AutocertConfig,
    ConfigValidationError,
    get_config,
    load_config_file,
    validate_schema,
)
from autocert.core.types import KeyAlgorithm


def _write(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    if name.endswith(".json"):
        path.write_text(json.dumps(data), encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_minimal_config(self, tmp_config_file):
        settings = AutocertConfig(config_file=tmp_config_file).settings

        assert settings.domains == ("example.com", "www.example.com")
        assert settings.email == "admin@example.com"
        assert settings.accept_terms_of_service is True
        assert settings.key_algorithm is KeyAlgorithm.ES256
        assert settings.authority.directory_url == LETS_ENCRYPT_PRODUCTION
        assert settings.authority.user_agent == "autocert"
        assert settings.authority.verify_ssl is True
        assert settings.account_store.backend == "file"
        assert settings.challenges.http01.port == 80
        assert settings.challenges.tls_alpn01.enabled is False
        assert settings.challenges.poll_attempts == 60
        assert settings.challenges.poll_interval_seconds == 2.0
        assert settings.output.pfx_password == ""
        assert settings.output.pem_path is None
        assert settings.logging.level == "INFO"

    def test_staging(self, tmp_path, minimal_config_data):
        minimal_config_data["authority"] = {"use_staging": True}
        settings = AutocertConfig(config_file=_write(tmp_path, minimal_config_data)).settings
        assert settings.authority.directory_url == LETS_ENCRYPT_STAGING

    def test_explicit_directory(self, tmp_path, minimal_config_data):
        minimal_config_data["authority"] = {"directory_url": "https://localhost:14000/dir"}
        settings = AutocertConfig(config_file=_write(tmp_path, minimal_config_data)).settings
        assert settings.authority.directory_url == "https://localhost:14000/dir"

    def test_json_file(self, tmp_path, minimal_config_data):
        minimal_config_data["key_algorithm"] = "RS256"
        cfg = AutocertConfig(config_file=_write(tmp_path, minimal_config_data, "cfg.json"))
        assert cfg.settings.key_algorithm is KeyAlgorithm.RS256


# ---------------------------------------------------------------------------
# Singleton and dynamic access
# ---------------------------------------------------------------------------


class TestSingleton:
    def test_get_config_before_init(self):
        with pytest.raises(RuntimeError, match="not initialised"):
            get_config()

    def test_get_config_after_init(self, tmp_config_file):
        cfg = AutocertConfig(config_file=tmp_config_file)
        assert get_config() is cfg
        assert cfg.source == str(tmp_config_file)
        assert "AutocertConfig" in repr(cfg)

    def test_dot_path_get(self, tmp_path, minimal_config_data):
        minimal_config_data["challenges"] = {"http01": {"port": 8080}}
        cfg = AutocertConfig(config_file=_write(tmp_path, minimal_config_data))

        assert cfg.get("challenges.http01.port") == 8080
        assert cfg.get("challenges.http01.bind", "0.0.0.0") == "0.0.0.0"
        assert cfg.get("email.nested", "fallback") == "fallback"
        assert cfg.data["email"] == "admin@example.com"


# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------


class TestEnvironment:
    def test_substitution(self, tmp_path, minimal_config_data, monkeypatch):
        monkeypatch.setenv("AUTOCERT_PFX_PASSWORD", "hunter2")
        minimal_config_data["output"] = {"pfx_password": "${AUTOCERT_PFX_PASSWORD}"}

        settings = AutocertConfig(config_file=_write(tmp_path, minimal_config_data)).settings

        assert settings.output.pfx_password == "hunter2"

    def test_default_used_when_unset(self, tmp_path, minimal_config_data, monkeypatch):
        monkeypatch.delenv("AUTOCERT_EMAIL", raising=False)
        minimal_config_data["email"] = "${AUTOCERT_EMAIL:-ops@example.com}"

        settings = AutocertConfig(config_file=_write(tmp_path, minimal_config_data)).settings

        assert settings.email == "ops@example.com"

    def test_list_items(self, tmp_path, minimal_config_data, monkeypatch):
        monkeypatch.setenv("AUTOCERT_DOMAIN", "env.example.com")
        minimal_config_data["domains"] = ["${AUTOCERT_DOMAIN}", "other.example.com"]

        settings = AutocertConfig(config_file=_write(tmp_path, minimal_config_data)).settings

        assert settings.domains == ("env.example.com", "other.example.com")

    def test_unset_without_default(self, tmp_path, minimal_config_data, monkeypatch):
        monkeypatch.delenv("AUTOCERT_MISSING", raising=False)
        minimal_config_data["email"] = "${AUTOCERT_MISSING}"

        with pytest.raises(ConfigValidationError) as exc_info:
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))
        assert "AUTOCERT_MISSING" in exc_info.value.errors[0]
        assert "'email'" in exc_info.value.errors[0]


# ---------------------------------------------------------------------------
# File and schema errors
# ---------------------------------------------------------------------------


class TestLoadErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigValidationError, match="not found"):
            load_config_file(tmp_path / "nope.yaml")

    def test_unparsable(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("domains: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="Cannot parse"):
            load_config_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="must be a mapping"):
            load_config_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config_file(path) == {}


class TestSchema:
    def test_missing_required(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_schema({})
        joined = "\n".join(exc_info.value.errors)
        assert "'domains' is a required property" in joined
        assert "'email' is a required property" in joined

    def test_empty_domains(self, minimal_config_data):
        minimal_config_data["domains"] = []
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_schema(minimal_config_data)
        assert exc_info.value.errors[0].startswith("domains:")

    def test_unknown_key(self, minimal_config_data):
        minimal_config_data["challenges"] = {"http01": {"prot": 80}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_schema(minimal_config_data)
        assert exc_info.value.errors[0].startswith("challenges.http01:")

    def test_bad_enum(self, minimal_config_data):
        minimal_config_data["key_algorithm"] = "ED25519"
        with pytest.raises(ConfigValidationError, match="key_algorithm"):
            validate_schema(minimal_config_data)

    def test_port_range(self, minimal_config_data):
        minimal_config_data["challenges"] = {"http01": {"port": 70000}}
        with pytest.raises(ConfigValidationError, match="challenges.http01.port"):
            validate_schema(minimal_config_data)

    def test_valid(self, minimal_config_data):
        validate_schema(minimal_config_data)


# ---------------------------------------------------------------------------
# Cross-field checks
# ---------------------------------------------------------------------------


class TestAdditionalChecks:
    def test_duplicate_domains(self, tmp_path, minimal_config_data):
        minimal_config_data["domains"] = ["example.com", "EXAMPLE.com"]
        with pytest.raises(ConfigValidationError, match="more than once"):
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))

    def test_wildcard(self, tmp_path, minimal_config_data):
        minimal_config_data["domains"] = ["*.example.com"]
        with pytest.raises(ConfigValidationError, match="wildcard"):
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))

    def test_bad_email(self, tmp_path, minimal_config_data):
        minimal_config_data["email"] = "not-an-address"
        with pytest.raises(ConfigValidationError, match="not a valid address"):
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))

    def test_pem_and_pfx_collide(self, tmp_path, minimal_config_data):
        minimal_config_data["output"] = {"pfx_path": "out/cert", "pem_path": "out/cert"}
        with pytest.raises(ConfigValidationError, match="pem_path"):
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))

    def test_tls_alpn_without_endpoint(self, tmp_path, minimal_config_data):
        minimal_config_data["challenges"] = {"tls_alpn01": {"enabled": True}}
        with pytest.raises(ConfigValidationError, match="tls_alpn01.enabled") as exc_info:
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))
        assert len(exc_info.value.errors) == 1

    def test_tls_alpn_disabled_is_accepted(self, tmp_path, minimal_config_data):
        minimal_config_data["challenges"] = {"tls_alpn01": {"enabled": False}}
        cfg = AutocertConfig(config_file=_write(tmp_path, minimal_config_data))
        assert cfg.settings.challenges.tls_alpn01.enabled is False

    def test_errors_are_collected(self, tmp_path, minimal_config_data):
        minimal_config_data["domains"] = ["*.example.com", "a.test", "a.test"]
        minimal_config_data["email"] = "nobody"
        with pytest.raises(ConfigValidationError) as exc_info:
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))
        assert len(exc_info.value.errors) == 3

    def test_warnings_are_logged(self, tmp_path, minimal_config_data, caplog):
        minimal_config_data["accept_terms_of_service"] = False
        minimal_config_data["authority"] = {
            "directory_url": "http://localhost:4000/directory",
            "use_staging": True,
            "verify_ssl": False,
        }
        minimal_config_data["challenges"] = {"poll_attempts": 2, "poll_interval_seconds": 1}

        with caplog.at_level(logging.WARNING, logger="autocert.config"):
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))

        messages = "\n".join(r.getMessage() for r in caplog.records)
        assert "does not use https" in messages
        assert "use_staging has no effect" in messages
        assert "verify_ssl is false" in messages
        assert "less than 10 seconds" in messages
        assert "accept_terms_of_service is false" in messages

    def test_failed_load_leaves_no_singleton(self, tmp_path, minimal_config_data):
        minimal_config_data["email"] = "nobody"
        with pytest.raises(ConfigValidationError):
            AutocertConfig(config_file=_write(tmp_path, minimal_config_data))
        with pytest.raises(RuntimeError):
            get_config()
