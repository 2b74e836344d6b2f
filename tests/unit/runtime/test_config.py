"""Configuration loading and context overrides."""

import pytest

from cloudwise.runtime.config.config_data import Auth0Config, ConfigData, StripeConfig
from cloudwise.runtime.config.config_template import (
    load_templated_yaml,
    parse_templated_yaml,
    substitute_env_vars,
)
from cloudwise.runtime.context import get_config, with_context

CONFIG_YAML = """
config:
  app:
    environment: ${APP_ENVIRONMENT:-production}
  auth0:
    domain: ${AUTH0_DOMAIN:-tenant.example.com}
    audience: "${AUTH0_AUDIENCE:-}"
  stripe:
    webhook_secret: ${STRIPE_WEBHOOK_SECRET:?webhook secret is required}
"""


class TestTemplateSubstitution:
    def test_defaults_apply_when_unset(self, monkeypatch):
        monkeypatch.delenv("SOME_VAR", raising=False)

        assert substitute_env_vars("x=${SOME_VAR:-fallback}") == "x=fallback"

    def test_environment_wins_over_default(self, monkeypatch):
        monkeypatch.setenv("SOME_VAR", "set")

        assert substitute_env_vars("x=${SOME_VAR:-fallback}") == "x=set"

    def test_required_variable_missing(self, monkeypatch):
        monkeypatch.delenv("SOME_VAR", raising=False)

        with pytest.raises(ValueError, match="SOME_VAR"):
            substitute_env_vars("x=${SOME_VAR}")


class TestParseConfig:
    def test_parses_templated_yaml(self, monkeypatch):
        monkeypatch.delenv("APP_ENVIRONMENT", raising=False)
        monkeypatch.delenv("AUTH0_DOMAIN", raising=False)
        monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_abc")

        config = parse_templated_yaml(CONFIG_YAML)

        assert config.app.environment == "production"
        assert config.auth0.issuer == "https://tenant.example.com/"
        assert config.auth0.jwks_uri == "https://tenant.example.com/.well-known/jwks.json"
        assert config.auth0.audience == ""
        assert config.auth0.algorithms == ["RS256"]
        assert config.stripe.webhook_secret == "whsec_abc"
        assert config.jwks.requests_per_minute == 5
        assert config.upload.max_size_bytes == 10 * 1024 * 1024

    def test_missing_required_secret_fails(self, monkeypatch):
        monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)

        with pytest.raises(ValueError, match="webhook secret is required"):
            parse_templated_yaml(CONFIG_YAML)

    def test_load_from_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_file")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        assert load_templated_yaml(path).stripe.webhook_secret == "whsec_file"

    @pytest.mark.parametrize("algorithms", [["HS256"], ["RS256", "HS512"], ["none"], []])
    def test_symmetric_and_unsigned_algorithms_are_refused(self, algorithms):
        with pytest.raises(ValueError):
            Auth0Config(domain="tenant.example.com", algorithms=algorithms)


class TestContextOverrides:
    def test_partial_override_keeps_other_values(self, test_config):
        with with_context(ConfigData(stripe=StripeConfig(tolerance=60))):
            config = get_config()
            assert config.stripe.tolerance == 60
            assert config.stripe.webhook_secret == test_config.stripe.webhook_secret
            assert config.auth0.domain == test_config.auth0.domain

        assert get_config().stripe.tolerance == 300

    def test_nested_overrides_unwind(self):
        with with_context(ConfigData(auth0=Auth0Config(domain="outer.test"))):
            with with_context(ConfigData(auth0=Auth0Config(domain="inner.test"))):
                assert get_config().auth0.issuer == "https://inner.test/"
            assert get_config().auth0.issuer == "https://outer.test/"

    def test_rejects_non_config_override(self):
        with pytest.raises(ValueError):
            with with_context({"app": {}}):  # type: ignore[arg-type]
                pass
