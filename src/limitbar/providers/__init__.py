from limitbar.providers.anthropic import AnthropicAdapter
from limitbar.providers.base import ProviderAdapter
from limitbar.providers.demo import DemoDataAdapter
from limitbar.providers.gemini import GeminiAdapter
from limitbar.providers.openai import OpenAIAdapter
from limitbar.providers.unsupported import UnsupportedSubscriptionAdapter

__all__ = [
    "AnthropicAdapter",
    "DemoDataAdapter",
    "GeminiAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "UnsupportedSubscriptionAdapter",
]
