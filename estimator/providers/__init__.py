from estimator.providers.base import BaseProvider, EstimatePrompt, ProviderError, StreamChunk
from estimator.providers.registry import provider_registry

__all__ = ["BaseProvider", "EstimatePrompt", "ProviderError", "StreamChunk", "provider_registry"]
