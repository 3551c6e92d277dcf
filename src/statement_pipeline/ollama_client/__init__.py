"""
Ollama inference client.

Minimal client for a local Ollama server: health probe and JSON-mode
generation, with typed errors and bounded retries.
"""

from .client import OllamaAPIError, OllamaClient, OllamaConnectionError, OllamaError

__all__ = ["OllamaClient", "OllamaError", "OllamaAPIError", "OllamaConnectionError"]
