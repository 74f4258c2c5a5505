"""
cli.py

Command line front end for the batch pipeline. Each positional source is a
local audio path or a public http(s) URL; all sources share the options given
on the command line and run through the same pipeline the HTTP service uses.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import List, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from groq_stt.config.settings import Settings
from groq_stt.domain.models import OutputFormat, ResponseFormat, TimestampGranularity, TranscribeBatchRequest
from groq_stt.logger import get_logger, set_level
from groq_stt.services.pipeline import BatchTranscriptionPipeline

log = get_logger("CLI")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Transcribe audio files or URLs with the Groq speech-to-text API")
    parser.add_argument("sources", nargs="+", help="Local audio paths or public http(s) URLs")
    parser.add_argument("--model", type=str, default=None, help="Groq model ID (default: whisper-large-v3-turbo)")
    parser.add_argument("--language", type=str, default=None, help="ISO-639-1 language code, e.g. en")
    parser.add_argument("--prompt", type=str, default=None, help="Optional prompt to guide spelling and style")
    parser.add_argument("--temperature", type=float, default=0.0, help="Sampling temperature 0..1 (default: 0)")
    parser.add_argument("--response-format", choices=[f.value for f in ResponseFormat], default=ResponseFormat.TEXT.value)
    parser.add_argument("--timestamp-granularity", choices=[g.value for g in TimestampGranularity], action="append",
                        default=[], help="Repeatable; requires --response-format verbose_json")
    parser.add_argument("--include-metadata", action="store_true", help="Include segment/word metadata in results")
    parser.add_argument("--output-format", choices=[f.value for f in OutputFormat], default=OutputFormat.TEXT.value)
    parser.add_argument("--concurrency", type=int, default=8, help="Parallel requests 1..10 (default: 8)")
    parser.add_argument("--save-as", type=str, default=None, help="Output filename (single source only)")
    parser.add_argument("--log-level", type=str, default=None, help="Log level (e.g., INFO, DEBUG)")
    return parser.parse_args(argv)


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def build_request(args: argparse.Namespace) -> TranscribeBatchRequest:
    if args.save_as and len(args.sources) > 1:
        raise ValueError("--save-as can only be used with a single source.")

    items: List[dict] = []
    for source in args.sources:
        item = {"url": source} if _is_url(source) else {"file_path": os.path.abspath(source)}
        if args.save_as:
            item["save_as"] = args.save_as
        items.append(item)

    return TranscribeBatchRequest(
        items=items,
        model=args.model,
        language=args.language,
        prompt=args.prompt,
        temperature=args.temperature,
        response_format=args.response_format,
        timestamp_granularities=args.timestamp_granularity,
        include_metadata=args.include_metadata,
        output_format=args.output_format,
        concurrency=args.concurrency,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    try:
        req = build_request(args)
    except (ValidationError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    settings = Settings.from_env()
    pipeline = BatchTranscriptionPipeline(settings, credential_supplier=lambda: os.getenv(settings.API_KEY_ENV))
    log.info("CLI run | sources=%d", len(args.sources))
    result = asyncio.run(pipeline.handle(req))

    print(result.content)
    failed = result.structured.get("summary", {}).get("failed", 0)
    return 1 if result.is_error or failed else 0


if __name__ == "__main__":
    sys.exit(main())
