import dataclasses

import httpx
import pytest

from cloudwise.api.http.app import create_app, startup
from cloudwise.core.services import JWKSCacheInMemory, JwksService
from cloudwise.runtime.config.config_data import AppConfig, Auth0Config, CORSConfig, ConfigData
from cloudwise.runtime.context import with_context
from tests.utils import JwksEndpoint


@pytest.fixture
def unreachable_provider(app_dependencies):
    endpoint = JwksEndpoint(httpx.ConnectError("no route to host"))
    jwks_service = JwksService(JWKSCacheInMemory(), transport=httpx.MockTransport(endpoint))
    return dataclasses.replace(app_dependencies, jwks_service=jwks_service)


class TestStartup:
    async def test_warms_key_set_cache(self, app_dependencies, jwks_endpoint):
        await startup(app_dependencies)

        assert jwks_endpoint.calls == 1

    async def test_unreachable_provider_is_tolerated_outside_production(
        self, unreachable_provider
    ):
        await startup(unreachable_provider)

    async def test_unreachable_provider_is_fatal_in_production(self, unreachable_provider):
        with with_context(ConfigData(app=AppConfig(environment="production"))):
            with pytest.raises(RuntimeError, match="JWKS readiness"):
                await startup(unreachable_provider)

    def test_wildcard_cors_is_refused_in_production(self):
        override = ConfigData(
            app=AppConfig(environment="production", cors=CORSConfig(origins=["*"]))
        )
        with with_context(override):
            with pytest.raises(RuntimeError, match="CORS"):
                create_app()

    async def test_missing_audience_is_fatal_in_production(self, app_dependencies):
        override = ConfigData(
            app=AppConfig(environment="production"), auth0=Auth0Config(audience="")
        )
        with with_context(override):
            with pytest.raises(RuntimeError, match="audience"):
                await startup(app_dependencies)
