"""
pipeline.py

BatchTranscriptionPipeline orchestrates one batch call end to end. It checks the
credential, normalizes the requested items, builds one `TranscriptionRequest` per
item from the shared options, fans the items out through `BatchCoordinator`
(each item handled by `ItemProcessor`), aggregates the ordered results into a
`BatchReport` and renders the human-facing text.

The call never raises for item-level problems: a missing credential or an empty
batch is reported once as an error response, everything else ends up in the
per-item results.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from groq_stt.config.settings import Settings
from groq_stt.domain.models import OutputFormat, TranscribeBatchRequest, TranscribeItem, TranscriptionRequest
from groq_stt.domain.results import ItemResult
from groq_stt.logger import get_logger
from groq_stt.services.artifact_writer import ArtifactWriter
from groq_stt.services.batch_coordinator import BatchCoordinator
from groq_stt.services.errors import MissingCredentialError
from groq_stt.services.item_processor import ItemProcessor
from groq_stt.services.renderer import render_batch, render_output
from groq_stt.services.result_aggregator import ResultAggregator
from groq_stt.services.transcription_client import TranscriptionClient

log = get_logger("Pipeline")

EXAMPLE_SINGLE = {"items": [{"file_path": "/absolute/path/to/audio.mp3"}]}
EXAMPLE_MANY = {
    "items": [
        {"id": "a", "file_path": "/abs/a.mp3", "save_as": "a.txt"},
        {"id": "b", "url": "https://example.com/b.wav"},
    ],
    "concurrency": 4,
}


@dataclass(frozen=True)
class PipelineResponse:
    content: str
    structured: Dict[str, Any]
    is_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"is_error": self.is_error, "content": self.content, "structured": self.structured}


class BatchTranscriptionPipeline:
    def __init__(
        self,
        settings: Settings,
        credential_supplier: Callable[[], Optional[str]],
        client: Optional[TranscriptionClient] = None,
        writer: Optional[ArtifactWriter] = None,
        coordinator: Optional[BatchCoordinator] = None,
    ) -> None:
        self.s = settings
        self.credential_supplier = credential_supplier
        self.client = client or TranscriptionClient(settings)
        self.writer = writer or ArtifactWriter(settings)
        self.processor = ItemProcessor(settings, self.client, self.writer)
        self.coordinator = coordinator or BatchCoordinator()

    def _require_credential(self) -> str:
        api_key = self.credential_supplier()
        if not api_key:
            raise MissingCredentialError(f"{self.s.API_KEY_ENV} is not set.")
        return api_key

    @staticmethod
    def _request_echo(req: TranscribeBatchRequest, model: str, items: List[TranscribeItem]) -> Dict[str, Any]:
        echo: Dict[str, Any] = {"model": model}
        if req.language:
            echo["language"] = req.language
        if req.prompt:
            echo["prompt"] = req.prompt
        echo.update({
            "temperature": req.temperature,
            "response_format": req.response_format.value,
            "timestamp_granularities": [g.value for g in req.timestamp_granularities],
            "include_metadata": req.include_metadata,
            "output_format": req.output_format.value,
            "concurrency": req.concurrency,
            "items": [item.echo() for item in items],
        })
        return echo

    async def handle(self, req: TranscribeBatchRequest) -> PipelineResponse:
        try:
            api_key = self._require_credential()
        except MissingCredentialError as e:
            log.error("Batch rejected | reason=%s", e)
            return PipelineResponse(
                content=f"Error: {e} Set it in your environment before starting the service.",
                structured={"error": e.code, "message": str(e)},
                is_error=True,
            )

        items = req.effective_items()
        if not items:
            log.warning("Batch rejected | reason=no items")
            return self._empty_batch_response()

        shared = req.shared_options(self.s.DEFAULT_MODEL)
        if len(items) > 1:
            # per-item blocks are not shown for multi-item batches
            shared = replace(shared, output_format=OutputFormat.TEXT)

        async def run_item(item: TranscribeItem, index: int) -> ItemResult:
            request = TranscriptionRequest.merge(shared, item.source(), save_as=item.save_as)
            return await self.processor.process(api_key, request, index=index, item_id=item.id)

        log.info("Transcription started | items=%d | concurrency=%d | model=%s | response_format=%s",
                 len(items), req.concurrency, shared.model, shared.response_format.value)
        results = await self.coordinator.dispatch(items, req.concurrency, run_item)

        report = ResultAggregator.build_report(shared.model, self._request_echo(req, shared.model, items), results)
        structured = report.to_dict()
        log.info("Transcription complete | total=%d | ok=%d | failed=%d",
                 report.summary.total, report.summary.ok, report.summary.failed)

        if len(items) == 1:
            first = results[0]
            if not first.ok:
                msg = first.error.message or f"Transcription failed ({first.error.code})."
                return PipelineResponse(content=f"Error: {msg}", structured=structured, is_error=True)
            return PipelineResponse(
                content=render_output(first.output, req.output_format, req.include_metadata),
                structured=structured,
            )

        content = render_batch(report.summary, results, req.output_format, self.s.ERROR_MESSAGE_PREVIEW_LIMIT)
        return PipelineResponse(content=content, structured=structured)

    @staticmethod
    def _empty_batch_response() -> PipelineResponse:
        content = (
            "Provide at least one audio source in `items`.\n\n"
            "Example (one file):\n" + json.dumps(EXAMPLE_SINGLE, indent=2)
            + "\n\nExample (many files):\n" + json.dumps(EXAMPLE_MANY, indent=2)
        )
        return PipelineResponse(
            content=content,
            structured={
                "error": "invalid_input",
                "message": "items must include at least one source",
                "usage": {"example_single": EXAMPLE_SINGLE, "example_many": EXAMPLE_MANY},
            },
            is_error=True,
        )
