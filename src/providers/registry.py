"""Provider registry — singleton map of service → provider instance."""

from src.providers.azure import AzureProvider
from src.providers.base import LLMProvider
from src.relay.models import Service

_providers: dict[Service, LLMProvider] = {}


def get_provider(service: Service) -> LLMProvider:
    """Get or create the provider for a service."""
    if service in _providers:
        return _providers[service]

    if service == Service.AZURE:
        _providers[service] = AzureProvider()
    elif service == Service.BEDROCK:
        # Lazy import keeps boto3 off the Azure-only path
        from src.providers.bedrock import BedrockProvider
        _providers[service] = BedrockProvider()
    else:
        raise ValueError(f"Unknown provider: {service}")

    return _providers[service]


async def close_all_providers() -> None:
    """Gracefully shut down all provider connections."""
    for provider in _providers.values():
        await provider.close()
    _providers.clear()
