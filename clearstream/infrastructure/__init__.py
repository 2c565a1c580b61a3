"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- video: FFmpeg/FFprobe decoding and Pillow encoding
- gemini: Veo video generation via google-genai
- storage: In-memory temporary resource handles

These wrappers translate between external formats and our domain models.
"""
