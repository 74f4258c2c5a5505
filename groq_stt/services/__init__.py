"""Transcription pipeline services: upstream client, item processing, batching, artifacts and rendering."""
