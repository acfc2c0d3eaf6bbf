"""
Unit tests for webauthclient.handshake.config module.

Tests default application, validation and immutability.
"""

import attrs
import pytest

from webauthclient.core.exceptions import ConfigurationError
from webauthclient.handshake import config as config_module
from webauthclient.handshake.config import (
    DEFAULT_AUTH_URL,
    DEFAULT_POST_BODY_TEMPLATE,
    DEFAULT_TOKEN_QUERY_KEY,
    MAX_RESPONSE_BYTES,
    AuthenticatorConfig,
    create_config,
)
from webauthclient.transport.client_factory import HTTPClientFactory, for_address


class TestDefaults:
    """Defaults are applied to every unset field."""

    def test_all_defaults(self):
        config = create_config()
        assert config.auth_url == DEFAULT_AUTH_URL
        assert config.post_body_template == DEFAULT_POST_BODY_TEMPLATE
        assert config.token_query_key == DEFAULT_TOKEN_QUERY_KEY
        assert isinstance(config.client_factory, HTTPClientFactory)
        assert config.client_factory.bound_address is None
        assert config.max_response_bytes == MAX_RESPONSE_BYTES == 1024 * 1024

    def test_empty_strings_take_defaults(self):
        config = create_config(auth_url="", post_body_template="", token_query_key="")
        assert config.auth_url == DEFAULT_AUTH_URL
        assert config.post_body_template == DEFAULT_POST_BODY_TEMPLATE
        assert config.token_query_key == DEFAULT_TOKEN_QUERY_KEY

    def test_direct_construction_matches_builder(self):
        direct = AuthenticatorConfig()
        built = create_config()
        assert direct.auth_url == built.auth_url
        assert direct.post_body_template == built.post_body_template

    def test_default_template(self):
        assert DEFAULT_POST_BODY_TEMPLATE == (
            "form_name=login&token={Token}&clientid={ClientID}&password={Password}"
        )

    def test_overrides_kept(self):
        factory = for_address("10.0.0.2")
        config = create_config(
            auth_url="http://gw.example.net/auth",
            post_body_template="t={Token}&u={ClientID}&p={Password}",
            token_query_key="tkn",
            client_factory=factory,
        )
        assert config.auth_url == "http://gw.example.net/auth"
        assert config.post_body_template == "t={Token}&u={ClientID}&p={Password}"
        assert config.token_query_key == "tkn"
        assert config.client_factory is factory

    def test_building_does_not_touch_module_defaults(self):
        create_config(auth_url="https://other.example.net/", token_query_key="tkn")
        assert config_module.DEFAULT_AUTH_URL == "https://auth.cryptohippie.net/"
        assert config_module.DEFAULT_TOKEN_QUERY_KEY == "token"

    def test_each_config_gets_its_own_default_factory(self):
        assert create_config().client_factory is not create_config().client_factory


class TestValidation:
    """Invalid configuration is rejected at construction."""

    @pytest.mark.parametrize(
        "auth_url",
        [
            "auth.example.net",
            "/relative/path",
            "ftp://auth.example.net/",
            "https://[::1/",
            "https://auth.example.net:abc/",
        ],
    )
    def test_invalid_auth_url(self, auth_url):
        with pytest.raises(ConfigurationError):
            create_config(auth_url=auth_url)

    @pytest.mark.parametrize(
        "template",
        ["user={Username}", "token={Token", "token={0}"],
    )
    def test_invalid_template(self, template):
        with pytest.raises(ConfigurationError):
            create_config(post_body_template=template)

    def test_template_may_omit_fields(self):
        config = create_config(post_body_template="token={Token}")
        assert config.post_body_template == "token={Token}"

    def test_invalid_client_factory(self):
        with pytest.raises(TypeError):
            AuthenticatorConfig(client_factory=object())

    def test_invalid_max_response_bytes(self):
        with pytest.raises(ValueError):
            AuthenticatorConfig(max_response_bytes=0)


class TestImmutability:
    """Config is frozen once built."""

    def test_cannot_modify(self):
        config = create_config()
        with pytest.raises(attrs.exceptions.FrozenInstanceError):
            config.auth_url = "https://evil.example.net/"
