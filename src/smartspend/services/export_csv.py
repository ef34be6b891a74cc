"""CSV export helpers and the zipped export bundle.

Export is read-only: it consumes a ledger snapshot and never calls back into
the store.
"""

from __future__ import annotations

import csv
import os
from datetime import datetime, timezone
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Iterable, Optional
from zipfile import ZipFile

from ..config import BaseConfig
from ..logging_config import get_logger
from ..models import Category, LedgerSnapshot, Source, Transaction
from .ledger_service import LedgerFilters, category_name, filtered_transactions, source_name
from .reports import export_spending_png

logger = get_logger(__name__)

CSV_HEADERS = ["id", "date", "type", "amount", "signed_amount", "category", "source", "note"]


def export_transactions_csv(
    *,
    transactions: Iterable[Transaction],
    output_path: Path,
    categories: Iterable[Category] = (),
    sources: Iterable[Source] = (),
) -> Path:
    """Write transactions to CSV at `output_path` with display names resolved.

    Columns are deterministic (see ``CSV_HEADERS``). Returns the path written.
    """

    categories = list(categories)
    sources = list(sources)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    # newline='' keeps csv from doubling line endings on Windows
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_HEADERS, quoting=csv.QUOTE_MINIMAL)
        writer.writeheader()
        for txn in transactions:
            writer.writerow(
                {
                    "id": txn.id,
                    "date": txn.date.isoformat(),
                    "type": txn.type.value,
                    "amount": f"{txn.amount:.2f}",
                    "signed_amount": f"{txn.signed_amount:.2f}",
                    "category": category_name(txn.category_id, categories),
                    "source": source_name(txn.source_id, sources),
                    "note": txn.note,
                }
            )

    return output_path


def _ensure_secure_directory(directory: Path) -> None:
    """Create the directory and set restrictive permissions when possible."""

    directory.mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(directory, 0o700)
    except (NotImplementedError, PermissionError):  # pragma: no cover - platform specific
        pass


def _prune_old_exports(directory: Path, keep: int) -> None:
    """Remove export archives beyond the retention count."""

    archives = sorted(
        directory.glob("smartspend_export_*.zip"),
        key=lambda file: file.stat().st_mtime,
        reverse=True,
    )
    for old in archives[keep:]:
        try:
            old.unlink()
        except OSError:  # pragma: no cover - best-effort cleanup
            logger.warning("Could not prune old export", extra={"path": str(old)})


def run_export(
    snapshot: LedgerSnapshot,
    output_dir: Path,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    retention: int = BaseConfig.EXPORT_RETENTION,
) -> Path:
    """Write a zip holding the transactions CSV and the spending chart; return its path."""

    _ensure_secure_directory(output_dir)
    transactions = filtered_transactions(
        snapshot.transactions, LedgerFilters(start_date=start, end_date=end)
    )
    lookup = {c.id: c.name for c in snapshot.categories}

    with TemporaryDirectory() as tmpdir:
        tmp = Path(tmpdir)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        csv_path = export_transactions_csv(
            transactions=transactions,
            output_path=tmp / f"transactions-{stamp}.csv",
            categories=snapshot.categories,
            sources=snapshot.sources,
        )
        png_path = export_spending_png(
            transactions=transactions,
            output_path=tmp / f"spending-{stamp}.png",
            category_lookup=lookup,
        )

        zip_path = output_dir / f"smartspend_export_{stamp}.zip"
        with ZipFile(zip_path, "w") as archive:
            archive.write(csv_path, arcname=csv_path.name)
            archive.write(png_path, arcname=png_path.name)

    _prune_old_exports(output_dir, keep=retention)
    logger.info("Export written", extra={"path": str(zip_path), "transactions": len(transactions)})
    return zip_path
