"""Synthesis provider adapters.

One adapter per backend, all sharing the `ProviderAdapter` capability set.
"""

from .azure import AzureAdapter
from .base import ProviderAdapter
from .deepgram import DeepgramAdapter
from .elevenlabs import ElevenLabsAdapter
from .gemini import GeminiAdapter
from .google import GoogleCloudAdapter
from .openai import OpenAIAdapter
from .polly import PollyAdapter

__all__ = [
    "ProviderAdapter",
    "GoogleCloudAdapter",
    "GeminiAdapter",
    "OpenAIAdapter",
    "AzureAdapter",
    "ElevenLabsAdapter",
    "DeepgramAdapter",
    "PollyAdapter",
]
