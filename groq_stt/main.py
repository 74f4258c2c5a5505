"""
main.py

This is the FastAPI entrypoint for the Groq speech-to-text batch service. It
provides an endpoint (`/transcribe`) that accepts a batch of audio sources
(local paths readable by the service, or public URLs), runs them through the
transcription pipeline and returns the rendered text together with the
structured per-item report.

"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from groq_stt.config.settings import Settings
from groq_stt.domain.models import TranscribeBatchRequest
from groq_stt.logger import get_logger
from groq_stt.services.pipeline import BatchTranscriptionPipeline

load_dotenv()
logger = get_logger("Main")

settings = Settings.from_env()


def _api_key() -> Optional[str]:
    return os.getenv(settings.API_KEY_ENV) or None


pipeline = BatchTranscriptionPipeline(settings, credential_supplier=_api_key)

app = FastAPI(title="Groq STT Batch")


@app.post("/transcribe")
async def transcribe(req: TranscribeBatchRequest) -> Dict[str, Any]:
    items = req.effective_items()
    logger.info("Request received | items=%d | model=%s | output_format=%s",
                len(items), req.model or settings.DEFAULT_MODEL, req.output_format.value)
    result = await pipeline.handle(req)
    return result.to_dict()


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {"status": "ok", "credential_configured": bool(_api_key())}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("groq_stt.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
