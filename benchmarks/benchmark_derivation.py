import asyncio
import time
from datetime import date, timedelta

from core.derivation import FireFilter
from core.gateway import MockGateway
from core.models import FilterSpecification
from core.statistics import FireStatistics

ROUNDS = 50

FILTERS = {
    "unconstrained": FilterSpecification(),
    "default_window": FilterSpecification.default(),
    "narrow": FilterSpecification(
        start_date=date.today() - timedelta(days=2),
        end_date=date.today(),
        confidence="high",
        region="Assam",
    ),
}


def load_data(batches: int):
    """Concatenate several mock fetches to get a larger raw dataset."""
    gateway = MockGateway(seed=42)

    async def collect():
        fires = []
        for _ in range(batches):
            fires.extend(await gateway.fetch_fires())
        return fires

    return asyncio.run(collect())


def benchmark(data, spec):
    """
    Benchmark utility: measure derivation time and stats time, averaged over ROUNDS.
    Returns: (derive_time, stats_time, kept)
    """
    t0 = time.perf_counter()
    for _ in range(ROUNDS):
        filtered = FireFilter.derive(data, spec)
    t1 = time.perf_counter()
    for _ in range(ROUNDS):
        FireStatistics.compute(filtered)
    t2 = time.perf_counter()

    return (t1 - t0) / ROUNDS, (t2 - t1) / ROUNDS, len(filtered)


if __name__ == "__main__":
    for batches in (1, 10, 100):
        data = load_data(batches)
        print(f"\n=== Benchmark Results ({len(data)} detections) ===")

        for label, spec in FILTERS.items():
            derive_time, stats_time, kept = benchmark(data, spec)
            print(f"{label}:")
            print(f"  Derive time : {derive_time:.6f} seconds")
            print(f"  Stats time  : {stats_time:.6f} seconds")
            print(f"  Kept        : {kept}")
        print()
