"""Example: parent configurations of a node in a discrete Bayesian network.

The node ``dyspnoea`` has two parents, ``tub_or_cancer`` and ``bronchitis``.
Fitting its conditional probability table needs, for every row of the data,
the joint configuration of the parents.  This script

1.  encodes the parent configurations with :func:`bncfg.configurations`,
2.  counts rows per (configuration, child level) with ``torch.bincount`` –
    the counting lives here, on the consumer side,
3.  plots the counts with matplotlib and plotly.
"""

from __future__ import annotations

import torch
import matplotlib
matplotlib.use('Agg')  # Set non-interactive backend
import matplotlib.pyplot as plt
import plotly.graph_objects as go

from bncfg import CategoricalColumn, ColumnSet, configurations

def sample_data(n: int = 500, seed: int = 0) -> tuple[ColumnSet, CategoricalColumn]:
    """Draw a toy data set with a few missing parent values."""
    gen = torch.Generator().manual_seed(seed)
    either = torch.randint(1, 3, (n,), generator=gen)
    bronc = torch.randint(1, 3, (n,), generator=gen)
    p_yes = 0.1 + 0.4 * (either == 2) + 0.3 * (bronc == 2)
    dysp = 1 + (torch.rand(n, generator=gen) < p_yes).to(torch.int64)

    parents = ColumnSet.from_columns(
        CategoricalColumn(either, 2, torch.rand(n, generator=gen) < 0.02, ("no", "yes"), "tub_or_cancer"),
        CategoricalColumn(bronc, 2, torch.rand(n, generator=gen) < 0.02, ("no", "yes"), "bronchitis"),
    )
    child = CategoricalColumn(dysp, 2, None, ("no", "yes"), "dyspnoea")
    return parents, child

def count_table(parents: ColumnSet, child: CategoricalColumn) -> tuple[torch.Tensor, tuple[str, ...]]:
    """(configurations × child levels) count matrix, ignoring incomplete rows."""
    fac = configurations(parents, complete=True)
    keep = ~fac.missing & ~child.missing
    cell = (fac.labels[keep].to(torch.int64) - 1) * child.nlevels + (child.values[keep] - 1)
    counts = torch.bincount(cell, minlength=fac.nlevels * child.nlevels)
    return counts.reshape(fac.nlevels, child.nlevels), fac.levels

def plot_counts(counts: torch.Tensor, levels: tuple[str, ...], name: str = "") -> tuple[go.Figure, plt.Figure]:
    """Grouped bar chart of the count matrix with plotly and matplotlib."""
    counts_np = counts.numpy()

    fig_plotly = go.Figure()
    for k, child_level in enumerate(("no", "yes")):
        fig_plotly.add_trace(go.Bar(x=list(levels), y=counts_np[:, k], name=f"dyspnoea={child_level}"))
    fig_plotly.update_layout(
        barmode='group',
        title="Counts per parent configuration",
        xaxis_title="tub_or_cancer:bronchitis",
        yaxis_title="rows",
        plot_bgcolor='white',
        width=800,
        height=500
    )

    fig_mpl, ax = plt.subplots(figsize=(8, 5))
    width = 0.4
    xs = range(len(levels))
    ax.bar([x - width / 2 for x in xs], counts_np[:, 0], width, label='dyspnoea=no')
    ax.bar([x + width / 2 for x in xs], counts_np[:, 1], width, label='dyspnoea=yes')
    ax.set_xticks(list(xs))
    ax.set_xticklabels(levels)
    ax.set_ylabel('rows')
    ax.grid(True, linestyle='--', alpha=0.7)
    ax.legend()
    plt.tight_layout()

    if name:
        fig_plotly.write_html(f"{name}.html")
        fig_mpl.savefig(f"{name}.png", dpi=300, bbox_inches='tight')
        plt.close(fig_mpl)  # Close matplotlib figure to free memory

    return fig_plotly, fig_mpl

def main():
    parents, child = sample_data()

    idx = configurations(parents, factor=False)
    print("first rows (1-based index):", idx.tolist()[:10])

    observed = configurations(parents)
    print("observed configurations:", observed.levels)

    counts, levels = count_table(parents, child)
    for level, row in zip(levels, counts.tolist()):
        print(f"  {level:<8} {row}")

    plot_counts(counts, levels, name="parent_configurations")

if __name__ == "__main__":
    main()
