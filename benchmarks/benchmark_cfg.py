"""Scaling benchmark for configuration encoding.

This module compares the vectorised :func:`bncfg.encoder.encode` with a plain
row-by-row Python loop over the same columns, for growing row counts, and
writes a plotly chart of the timings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple
import time

import torch
import tyro  # type: ignore – project guideline
import plotly.graph_objects as go

from bncfg.columns import CategoricalColumn, ColumnSet
from bncfg.encoder import encode
from bncfg.presenter import to_factor

@dataclass
class BenchmarkResult:
    """Results from a single benchmark run."""
    name: str
    row_counts: List[int]
    times: List[float]  # mean seconds per call

def time_fn(fn: Callable, *args, **kwargs) -> float:
    """Time a single function call."""
    start_time = time.perf_counter()
    fn(*args, **kwargs)
    return time.perf_counter() - start_time

def make_columns(rows: int, levels: List[int], missing_rate: float = 0.01, seed: int = 0) -> ColumnSet:
    """Random parent columns with the given level counts."""
    gen = torch.Generator().manual_seed(seed)
    columns = []
    for n in levels:
        values = torch.randint(1, n + 1, (rows,), generator=gen)
        missing = torch.rand(rows, generator=gen) < missing_rate
        columns.append(CategoricalColumn(values, n, missing))
    return ColumnSet(tuple(columns))

def loop_encode(cols: ColumnSet) -> List[Optional[int]]:
    """Reference implementation: one Python loop iteration per cell."""
    data = [col.tolist() for col in cols]
    weights = [1]
    for n in cols.nlevels[:-1]:
        weights.append(weights[-1] * n)

    out: List[Optional[int]] = []
    for i in range(cols.nrows):
        code: Optional[int] = 0
        for j, column in enumerate(data):
            if column[i] is None:
                code = None
                break
            code += (column[i] - 1) * weights[j]
        out.append(code)
    return out

def benchmark(
    name: str,
    fn: Callable[[ColumnSet], object],
    row_counts: List[int],
    levels: List[int],
    n_runs: int = 5,
) -> BenchmarkResult:
    """Mean wall-clock time of *fn* for every row count."""
    times = []
    for rows in row_counts:
        cols = make_columns(rows, levels)
        total = sum(time_fn(fn, cols) for _ in range(n_runs))
        times.append(total / n_runs)
    return BenchmarkResult(name=name, row_counts=row_counts, times=times)

def plot_results(results: List[BenchmarkResult], output_dir: Path):
    """Plot benchmark results using plotly."""
    output_dir.mkdir(parents=True, exist_ok=True)

    fig = go.Figure()
    for result in results:
        fig.add_trace(go.Scatter(
            x=result.row_counts,
            y=result.times,
            name=result.name,
            mode='lines+markers'
        ))

    fig.update_layout(
        title="Configuration encoding: vectorised vs row loop",
        xaxis_title="Rows",
        yaxis_title="Time (seconds)",
        xaxis_type="log",
        yaxis_type="log"
    )
    fig.write_html(output_dir / "encode_scaling.html")

@dataclass
class Config(tyro.conf.FlagConversionOff):  # type: ignore[misc]
    row_counts: List[int] = field(default_factory=lambda: [10 ** 2, 10 ** 3, 10 ** 4, 10 ** 5])
    levels: List[int] = field(default_factory=lambda: [3, 4, 2, 5])
    n_runs: int = 5
    output_dir: Path = Path("benchmark_results")

def main(cfg: Config) -> None:
    results = [
        benchmark("encode", encode, cfg.row_counts, cfg.levels, cfg.n_runs),
        benchmark("encode + to_factor", lambda c: to_factor(encode(c)), cfg.row_counts, cfg.levels, cfg.n_runs),
        benchmark("row loop", loop_encode, cfg.row_counts, cfg.levels, cfg.n_runs),
    ]

    for result in results:
        print(f"\n{result.name}")
        for rows, t in zip(result.row_counts, result.times):
            print(f"  rows={rows:>8}  {t:.6f}s")

    plot_results(results, cfg.output_dir)
    print(f"\nPlots written to {cfg.output_dir}/")

if __name__ == "__main__":
    tyro.cli(main)
