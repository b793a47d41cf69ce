"""Registry of the providers that loaded at startup.

The registry is filled once by :meth:`ProviderRegistry.startup` and only
read afterwards, so it can be shared between threads.  A provider is
available if and only if all its required credentials were set and its
transport client was built without error.

Client construction goes through a mapping of factories, one per provider,
which tests replace with fakes implementing the same client protocol.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from email_service.config import ServiceConfig, ServiceProvider
from email_service.errors import (
    MissingFromDomainError,
    MissingFromUsernameError,
    NoServiceProviderError,
)
from email_service.mailer.mandrill_sender import MandrillClient
from email_service.mailer.postmark_sender import PostmarkClient
from email_service.mailer.ses_sender import Boto3SesClient
from email_service.mailer.smtp_sender import SmtpClient

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[ServiceConfig], Any]


def _mandrill_client(config: ServiceConfig) -> MandrillClient:
    return MandrillClient(config.mandrill_api_key)


def _ses_client(config: ServiceConfig) -> Boto3SesClient:
    return Boto3SesClient(
        access_key_id=config.aws_ses_access_id,
        secret_access_key=config.aws_ses_secret_key,
        region=config.aws_ses_region,
        endpoint_url=config.aws_ses_endpoint,
    )


def _postmark_client(config: ServiceConfig) -> PostmarkClient:
    return PostmarkClient(config.postmark_server_token)


def _smtp_client(config: ServiceConfig) -> SmtpClient:
    return SmtpClient(
        host=config.smtp_host,
        port=config.smtp_port,
        username=config.smtp_username,
        password=config.smtp_password,
        use_ssl=config.smtp_use_ssl,
    )


DEFAULT_CLIENT_FACTORIES: Mapping[ServiceProvider, ClientFactory] = {
    ServiceProvider.MANDRILL: _mandrill_client,
    ServiceProvider.AWS_SES: _ses_client,
    ServiceProvider.POSTMARK: _postmark_client,
    ServiceProvider.SMTP: _smtp_client,
}

# Providers in evaluation order with the config fields each one requires.
REQUIRED_CREDENTIALS: Tuple[Tuple[ServiceProvider, Tuple[str, ...]], ...] = (
    (ServiceProvider.MANDRILL, ("mandrill_api_key",)),
    (ServiceProvider.AWS_SES, ("aws_ses_access_id", "aws_ses_secret_key")),
    (ServiceProvider.POSTMARK, ("postmark_server_token",)),
    (ServiceProvider.SMTP, ("smtp_host", "smtp_username", "smtp_password")),
)


class ProviderRegistry:
    """Tracks which providers are configured and holds their clients."""

    def __init__(
        self, client_factories: Optional[Mapping[ServiceProvider, ClientFactory]] = None
    ) -> None:
        factories: Dict[ServiceProvider, ClientFactory] = dict(DEFAULT_CLIENT_FACTORIES)
        if client_factories:
            factories.update(client_factories)
        self._factories = factories
        self._available: List[ServiceProvider] = []
        self._clients: Dict[ServiceProvider, Any] = {}

    @property
    def available_providers(self) -> List[ServiceProvider]:
        """Providers that loaded, in load order."""
        return list(self._available)

    def startup(self, config: ServiceConfig) -> List[ServiceProvider]:
        """Validate ``config`` and build a client for every configured provider.

        Args:
            config: The service configuration.  Unset recipient ceilings and
                SES endpoint/region are filled with their defaults.

        Returns:
            The providers that are now available.

        Raises:
            MissingFromUsernameError: If ``from_username`` is empty.
            MissingFromDomainError: If ``from_domain`` is empty.
            NoServiceProviderError: If no provider could be loaded.
        """
        if not config.from_username:
            raise MissingFromUsernameError()
        if not config.from_domain:
            raise MissingFromDomainError()

        config.apply_defaults()

        available: List[ServiceProvider] = []
        clients: Dict[ServiceProvider, Any] = {}
        for provider, fields in REQUIRED_CREDENTIALS:
            if not all(getattr(config, name) for name in fields):
                continue
            try:
                clients[provider] = self._factories[provider](config)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning(
                    "Provider %s is configured but its client failed to load: %s",
                    provider.value,
                    exc,
                )
                continue
            available.append(provider)

        if not available:
            raise NoServiceProviderError()

        self._available = available
        self._clients = clients
        LOGGER.info(
            "Available email service providers: %s",
            ", ".join(p.value for p in available),
        )
        return list(available)

    def is_available(self, provider: Any) -> bool:
        return provider in self._available

    def client_for(self, provider: ServiceProvider) -> Any:
        return self._clients[provider]


__all__ = [
    "ClientFactory",
    "DEFAULT_CLIENT_FACTORIES",
    "ProviderRegistry",
    "REQUIRED_CREDENTIALS",
]
