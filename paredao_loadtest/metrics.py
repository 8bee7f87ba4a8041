"""Collect and report vote check outcomes."""
import json
import logging
import time
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import RunParameters, ScenarioConfig
from .models import CHECK_NAME, CheckResult

logger = logging.getLogger(__name__)


class LoadTestMetrics:
    """Tally of check results, dropped iterations and latencies for one run."""

    def __init__(self):
        self.total_requests = 0
        self.checks_passed = 0
        self.checks_failed = 0
        self.dropped_iterations = 0
        self.interrupted_iterations = 0
        self.latencies: List[float] = []
        self.status_codes: Counter = Counter()
        self.errors: Dict[str, int] = defaultdict(int)
        self.votes_by_participante: Counter = Counter()
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def start(self):
        self.start_time = time.time()

    def finish(self):
        self.end_time = time.time()

    def record_check(self, result: CheckResult):
        """Record the outcome of one vote request."""
        self.total_requests += 1
        self.latencies.append(result.latency)
        self.votes_by_participante[result.participante_id] += 1
        if result.status_code is not None:
            self.status_codes[result.status_code] += 1

        if result.passed:
            self.checks_passed += 1
        else:
            self.checks_failed += 1
            if result.error:
                self.errors[result.error] += 1

    def record_dropped(self):
        """Record an arrival skipped because every VU was busy."""
        self.dropped_iterations += 1

    def record_interrupted(self, error: str):
        """Record an iteration that died with an unexpected exception."""
        self.interrupted_iterations += 1
        self.errors[error] += 1

    def calculate_percentile(self, percentile: float) -> float:
        """Calculate latency percentile."""
        if not self.latencies:
            return 0.0

        sorted_latencies = sorted(self.latencies)
        index = int(len(sorted_latencies) * (percentile / 100.0))
        return sorted_latencies[min(index, len(sorted_latencies) - 1)]

    @property
    def duration(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return max(self.end_time - self.start_time, 0.0)

    @property
    def success_rate(self) -> float:
        """Calculate check success rate percentage."""
        if self.total_requests == 0:
            return 0.0
        return (self.checks_passed / self.total_requests) * 100

    @property
    def failure_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return 100.0 - self.success_rate

    @property
    def min_latency(self) -> float:
        return min(self.latencies) if self.latencies else 0.0

    @property
    def max_latency(self) -> float:
        return max(self.latencies) if self.latencies else 0.0

    @property
    def mean_latency(self) -> float:
        if not self.latencies:
            return 0.0
        return sum(self.latencies) / len(self.latencies)

    @property
    def requests_per_second(self) -> float:
        """Calculate achieved requests per second."""
        duration = self.duration
        return self.total_requests / duration if duration > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Summarise the run for JSON export."""
        return {
            "duration_seconds": self.duration,
            "total_requests": self.total_requests,
            "checks": {
                "name": CHECK_NAME,
                "passed": self.checks_passed,
                "failed": self.checks_failed,
                "success_rate_percent": self.success_rate,
            },
            "dropped_iterations": self.dropped_iterations,
            "interrupted_iterations": self.interrupted_iterations,
            "requests_per_second": self.requests_per_second,
            "status_codes": {str(code): count for code, count in sorted(self.status_codes.items())},
            "votes_by_participante": dict(self.votes_by_participante),
            "latency_ms": {
                "min": self.min_latency * 1000,
                "max": self.max_latency * 1000,
                "mean": self.mean_latency * 1000,
                "p50": self.calculate_percentile(50) * 1000,
                "p95": self.calculate_percentile(95) * 1000,
                "p99": self.calculate_percentile(99) * 1000,
            },
            "errors": dict(self.errors),
        }

    def generate_report(self) -> str:
        """Generate the end-of-run summary."""
        report = [
            "\n" + "="*70,
            "📊 VOTE LOAD TEST RESULTS",
            "="*70,
            f"\n⏱️  Duration: {self.duration:.2f} seconds",
            f"📈 Total Requests: {self.total_requests:,}",
            f"🚀 Requests/sec: {self.requests_per_second:.2f}",
            f"\n✔️  Check '{CHECK_NAME}':",
            f"   ✅ Passed: {self.checks_passed:,} ({self.success_rate:.2f}%)",
            f"   ❌ Failed: {self.checks_failed:,} ({self.failure_rate:.2f}%)",
        ]

        if self.dropped_iterations or self.interrupted_iterations:
            report.append(f"\n⚠️  Dropped iterations: {self.dropped_iterations:,}")
            report.append(f"⚠️  Interrupted iterations: {self.interrupted_iterations:,}")

        report.extend([
            f"\n⏲️  Latency (ms):",
            f"   - Min: {self.min_latency * 1000:.2f}",
            f"   - Max: {self.max_latency * 1000:.2f}",
            f"   - Mean: {self.mean_latency * 1000:.2f}",
            f"   - Median (p50): {self.calculate_percentile(50) * 1000:.2f}",
            f"   - p95: {self.calculate_percentile(95) * 1000:.2f}",
            f"   - p99: {self.calculate_percentile(99) * 1000:.2f}",
        ])

        if self.status_codes:
            report.append(f"\n🔢 Status codes:")
            for code, count in sorted(self.status_codes.items()):
                report.append(f"   - {code}: {count:,}")

        if self.votes_by_participante:
            report.append(f"\n🗳️  Votes by participante:")
            for participante, count in self.votes_by_participante.most_common():
                report.append(f"   - {participante}: {count:,}")

        if self.errors:
            report.append(f"\n❗ Errors:")
            for error, count in sorted(self.errors.items(), key=lambda x: -x[1]):
                report.append(f"   - {error}: {count:,}")

        report.append("="*70 + "\n")

        return "\n".join(report)


def save_results(metrics: LoadTestMetrics, scenario: ScenarioConfig, run: RunParameters, filename: str) -> str:
    """Save the run summary to a JSON file and return its path."""
    results = {
        "timestamp": datetime.now().isoformat(),
        "test_config": {
            "rate": scenario.rate,
            "time_unit_seconds": scenario.time_unit,
            "duration": scenario.duration,
            "pre_allocated_vus": scenario.pre_allocated_vus,
            "max_vus": scenario.max_vus,
            "api_base": run.api_base,
            "paredao_id": run.paredao_id,
            "participante_ids": list(run.participante_ids),
        },
        "metrics": metrics.to_dict(),
    }

    with open(filename, 'w') as f:
        json.dump(results, f, indent=2)

    logger.info(f"Detailed results saved to {filename}")
    return filename
