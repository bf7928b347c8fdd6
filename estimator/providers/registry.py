import asyncio
import logging
from typing import Dict, Optional

from estimator.config import settings
from estimator.providers.base import BaseProvider
from estimator.providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)


class UnknownModelError(ValueError):
    """The requested model is not one of the configured models."""


class ProviderRegistry:
    """Holds one provider instance per model, built from settings"""

    # Maximum time to wait for active streams during cleanup (seconds)
    CLEANUP_TIMEOUT = 10.0

    def __init__(self):
        self._providers: Dict[str, BaseProvider] = {}
        self._active_streams: int = 0

    def stream_started(self) -> None:
        """Call when a provider stream starts."""
        self._active_streams += 1

    def stream_ended(self) -> None:
        """Call when a provider stream ends."""
        self._active_streams = max(0, self._active_streams - 1)

    @property
    def active_streams(self) -> int:
        return self._active_streams

    def get_provider(self, model: Optional[str] = None) -> Optional[BaseProvider]:
        """
        Return the provider for `model` (default model if None), or None if unconfigured.

        Raises:
            UnknownModelError: `model` is not listed in settings.model_names
        """
        model = model or settings.openai_model
        if model not in settings.model_names:
            raise UnknownModelError(f"Unsupported model: {model}")
        if not settings.openai_api_key:
            return None

        provider = self._providers.get(model)
        if provider is None:
            provider = OpenAIProvider(
                settings.openai_api_key, model, base_url=settings.openai_base_url
            )
            self._providers[model] = provider
            logger.info(f"Initialized provider '{provider.name}' for model {model}")
        return provider

    async def cleanup(self):
        """Cleanup all providers, waiting for active streams to complete."""
        wait_time = 0.0
        while self._active_streams > 0 and wait_time < self.CLEANUP_TIMEOUT:
            logger.debug(f"Waiting for {self._active_streams} active streams to complete...")
            await asyncio.sleep(0.1)
            wait_time += 0.1

        if self._active_streams > 0:
            logger.warning(
                f"Cleanup timeout: {self._active_streams} streams still active after "
                f"{self.CLEANUP_TIMEOUT}s. Proceeding with cleanup."
            )

        for model, provider in self._providers.items():
            try:
                await provider.cleanup()
            except Exception as e:
                logger.warning(f"Error cleaning up provider for {model}: {e}")
        self._providers.clear()


# Singleton instance
provider_registry = ProviderRegistry()
