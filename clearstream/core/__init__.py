"""
Core business logic for video restoration.

This module is framework-agnostic - it doesn't import FastAPI, FFmpeg
bindings or the Gemini SDK. The session state machine can be tested in
isolation with fake extractors and generators.
"""
