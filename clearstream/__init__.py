"""
ClearStream - watermark-free video reconstruction with Gemini Veo.

This package contains the complete application:
- core: Framework-agnostic restoration logic
- infrastructure: FFmpeg, Gemini and resource storage integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
