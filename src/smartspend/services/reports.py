"""Reporting utilities: spending charts rendered with matplotlib."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from ..models import UNCATEGORIZED, Transaction, TransactionType


class ReportRenderer(Protocol):
    """Protocol describing renderer behavior."""

    def render(self, figure: Figure, *, output_path: Path) -> None:  # pragma: no cover - interface
        ...


def spending_totals(
    transactions: Iterable[Transaction], category_lookup: dict[str, str] | None = None
) -> list[tuple[str, float]]:
    """Outflow totals per category label, largest first. Income is excluded."""

    totals: dict[str, float] = {}
    for txn in transactions:
        if txn.type == TransactionType.INCOME:
            continue
        label = (category_lookup or {}).get(txn.category_id, UNCATEGORIZED)
        totals[label] = totals.get(label, 0.0) + txn.amount
    return sorted(((k, v) for k, v in totals.items() if v > 0), key=lambda item: item[1], reverse=True)


def build_spending_chart(
    *,
    transactions: Iterable[Transaction],
    category_lookup: dict[str, str] | None = None,
    currency_symbol: str = "฿",
) -> Figure:
    """Create a donut chart of spending by category.

    Labels are resolved via ``category_lookup``; unknown ids are grouped as
    "Uncategorized".
    """

    items = spending_totals(transactions, category_lookup)
    labels = [label for label, _ in items]
    sizes = [amount for _, amount in items]
    grand_total = sum(sizes)

    fig, ax = plt.subplots(figsize=(9, 6))

    if sizes:
        cmap = plt.get_cmap("tab20c")
        colors = [cmap(i / max(len(sizes), 1)) for i in range(len(sizes))]

        wedges, _, autotexts = ax.pie(
            sizes,
            labels=None,
            autopct=lambda pct: f"{pct:.1f}%" if pct > 4 else "",
            wedgeprops=dict(width=0.45, edgecolor="white", linewidth=1.5),
            startangle=90,
            colors=colors,
            pctdistance=0.78,
        )
        for autotext in autotexts:
            autotext.set_fontsize(9)
            autotext.set_color("white")

        ax.text(0, 0.08, "Total Spending", ha="center", va="center", fontsize=11, color="#666")
        ax.text(
            0, -0.08, f"{currency_symbol}{grand_total:,.0f}",
            ha="center", va="center", fontsize=18, fontweight="bold", color="#1F2937",
        )

        legend_labels = [
            f"{label}: {currency_symbol}{size:,.0f} ({size / grand_total * 100:.1f}%)"
            for label, size in zip(labels, sizes)
        ]
        ax.legend(
            wedges,
            legend_labels,
            title="Categories",
            loc="center left",
            bbox_to_anchor=(1.02, 0.5),
            fontsize=9,
        )
        ax.axis("equal")
        ax.set_title("Spending by Category", fontsize=16, fontweight="bold", pad=20)
    else:
        ax.text(0.5, 0.5, "No spending data", ha="center", va="center", fontsize=14, color="#666")
        ax.axis("off")

    plt.tight_layout()
    return fig


def export_spending_png(
    *,
    transactions: Iterable[Transaction],
    output_path: Path,
    category_lookup: dict[str, str] | None = None,
    renderer: ReportRenderer | None = None,
) -> Path:
    """Render spending chart to PNG and return the path."""

    fig = build_spending_chart(transactions=transactions, category_lookup=category_lookup)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        if renderer is not None:
            renderer.render(fig, output_path=output_path)
        else:
            fig.savefig(output_path, bbox_inches="tight", dpi=120)
    finally:
        plt.close(fig)
    return output_path
