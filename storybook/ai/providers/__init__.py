"""Provider implementations."""

from storybook.ai.providers.base import Provider, ProviderInfo
from storybook.ai.providers.gemini import GeminiProvider
from storybook.ai.providers.openrouter import OpenRouterProvider

__all__ = ["Provider", "ProviderInfo", "GeminiProvider", "OpenRouterProvider"]
