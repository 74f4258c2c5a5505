"""
renderer.py

Turns already-built structured results into the human-facing text block
(plain text, markdown or JSON). Pure functions; nothing here touches the
network or the disk.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

from groq_stt.domain.models import OutputFormat
from groq_stt.domain.results import BatchSummary, ItemResult, TranscriptOutput
from groq_stt.helpers.text_utils import TextUtils

TRANSCRIPT_PREVIEW_CHARS = 200


def render_output(output: TranscriptOutput, output_format: OutputFormat, include_metadata: bool) -> str:
    if output_format == OutputFormat.JSON:
        return json.dumps(output.to_dict(), indent=2, ensure_ascii=False)
    if output_format == OutputFormat.MARKDOWN:
        text = f"# Transcription\n\n{output.transcript}\n"
        if include_metadata and output.metadata:
            text += f"\n## Metadata\n\n```json\n{json.dumps(output.metadata, indent=2, ensure_ascii=False)}\n```\n"
        return text
    return output.transcript


def _target(result: ItemResult, markdown: bool) -> str:
    if result.source.file_path:
        return f"`file_path`: `{result.source.file_path}`" if markdown else f"file_path={result.source.file_path}"
    return f"`url`: `{result.source.url}`" if markdown else f"url={result.source.url}"


def _summarize_text(summary: BatchSummary, results: Iterable[ItemResult], preview_limit: int) -> str:
    lines: List[str] = [
        "Transcription complete.",
        f"Total: {summary.total} | OK: {summary.ok} | Failed: {summary.failed}",
    ]
    for r in results:
        item_id = f" id={r.id}" if r.id else ""
        if r.ok:
            lines.append(f"- [{r.index}] OK{item_id} {_target(r, False)}")
            continue
        extra = f" status={r.error.status}" if r.error.status else ""
        msg = TextUtils.preview_message(r.error.message, preview_limit)
        lines.append(f"- [{r.index}] FAILED{item_id} {_target(r, False)} ({r.error.code}{extra})" + (f" - {msg}" if msg else ""))
    lines.append("Full transcripts are available in structured results[*].output.transcript.")
    return "\n".join(lines)


def _summarize_markdown(summary: BatchSummary, results: Iterable[ItemResult], preview_limit: int) -> str:
    lines: List[str] = [
        "# Transcription",
        "",
        f"- Total: **{summary.total}**",
        f"- OK: **{summary.ok}**",
        f"- Failed: **{summary.failed}**",
        "",
        "## Results",
        "",
    ]
    for r in results:
        item_id = f" (`id`: `{r.id}`)" if r.id else ""
        if r.ok:
            lines.append(f"- [{r.index}] OK{item_id} - {_target(r, True)}")
            continue
        extra = f" (status {r.error.status})" if r.error.status else ""
        msg = TextUtils.preview_message(r.error.message, preview_limit)
        lines.append(f"- [{r.index}] FAILED{item_id} - {_target(r, True)} - `{r.error.code}`{extra}" + (f" - {msg}" if msg else ""))
    lines += ["", "Full transcripts are available in `results[*].output.transcript`."]
    return "\n".join(lines)


def _summarize_json(summary: BatchSummary, results: Iterable[ItemResult]) -> str:
    rows: List[Dict[str, Any]] = []
    for r in results:
        row: Dict[str, Any] = {"index": r.index}
        if r.id:
            row["id"] = r.id
        row["source"] = r.source.to_dict()
        row["ok"] = r.ok
        if r.ok:
            row["transcript_preview"] = r.output.transcript[:TRANSCRIPT_PREVIEW_CHARS]
        else:
            row["error"] = r.error.to_dict()
        rows.append(row)
    return json.dumps({"summary": summary.to_dict(), "results": rows}, indent=2, ensure_ascii=False)


def render_batch(summary: BatchSummary, results: Iterable[ItemResult], output_format: OutputFormat,
                 preview_limit: int = 200) -> str:
    results = list(results)
    if output_format == OutputFormat.JSON:
        return _summarize_json(summary, results)
    if output_format == OutputFormat.MARKDOWN:
        return _summarize_markdown(summary, results, preview_limit)
    return _summarize_text(summary, results, preview_limit)
