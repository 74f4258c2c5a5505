"""Batch speech-to-text against the Groq OpenAI-compatible transcription API."""

__version__ = "0.1.0"
