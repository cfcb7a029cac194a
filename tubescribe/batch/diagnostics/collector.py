# tubescribe/batch/diagnostics/collector.py
"""
Aggregation of per-job results into a batch report.
"""

from __future__ import annotations

from typing import Dict, List

from tubescribe.batch.schema import BatchReport, JobOutcome, JobResult


class BatchCollector:
    """
    Accumulates JobResult objects in insertion order.

    Only touched by the scheduler after gather() returns, so no locking.
    """

    def __init__(self) -> None:
        self._results: Dict[str, JobResult] = {}

    def add_job_result(self, result: JobResult) -> None:
        if result.reference in self._results:
            raise ValueError(f"Duplicate job result for {result.reference}")
        self._results[result.reference] = result

    def count(self, outcome: JobOutcome) -> int:
        return sum(1 for result in self._results.values() if result.outcome is outcome)

    def failed_references(self) -> List[str]:
        return [ref for ref, result in self._results.items() if result.outcome is JobOutcome.FAILED]

    def build_report(self) -> BatchReport:
        results = list(self._results.values())
        return BatchReport(
            results=results,
            completed=self.count(JobOutcome.COMPLETED),
            skipped=self.count(JobOutcome.SKIPPED),
            failed=self.count(JobOutcome.FAILED),
            soft_failures=sum(result.soft_failures for result in results),
        )
