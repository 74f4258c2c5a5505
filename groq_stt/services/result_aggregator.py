"""
result_aggregator.py

Folds the ordered per-item results into summary counters and the batch report.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

from groq_stt.domain.results import BatchReport, BatchSummary, ItemResult


class ResultAggregator:
    @staticmethod
    def summarize(results: Sequence[ItemResult]) -> BatchSummary:
        for r in results:
            if not isinstance(r, ItemResult):
                raise TypeError(f"Expected ItemResult, got {type(r).__name__}")
        ok = sum(1 for r in results if r.ok)
        return BatchSummary(total=len(results), ok=ok, failed=len(results) - ok)

    @staticmethod
    def build_report(model: str, request: Dict[str, Any], results: Sequence[ItemResult]) -> BatchReport:
        summary = ResultAggregator.summarize(results)
        return BatchReport(model=model, request=request, summary=summary, results=tuple(results))
