"""
Gemini Veo API client wrapper.

Implements the VideoGenerator protocol from core.restoration.session.
"""

from .client import VeoConfig, VeoGenerationClient, translate_provider_error

__all__ = ["VeoConfig", "VeoGenerationClient", "translate_provider_error"]
