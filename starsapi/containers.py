from dependency_injector import containers, providers

from starsapi.config import get_settings
from starsapi.services.identity_service import DeviceTokenSigner, IdentityResolver


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(get_settings)


class IdentityModule(containers.DeclarativeContainer):
    """Request identity (signed device cookie + authenticated user)."""

    config = providers.DependenciesContainer()

    device_signer = providers.Singleton(
        DeviceTokenSigner, secret=config.config.provided.device_cookie_secret
    )
    identity_resolver = providers.Singleton(IdentityResolver, signer=device_signer)


class Container(containers.DeclarativeContainer):
    """Application container.

    DB 세션은 요청마다 새로 열어야 하므로 서비스는 deps.py에서 생성합니다.
    """

    wiring_config = containers.WiringConfiguration(
        modules=[
            "starsapi.deps",
        ],
    )

    config = providers.Container(ConfigModule)
    identity = providers.Container(IdentityModule, config=config)
