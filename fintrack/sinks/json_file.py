"""JSON file sink for exporting month listings and ledger records."""

import json
import logging
from pathlib import Path
from typing import Any

from fintrack.reports import MonthSummary
from fintrack.serialization import entry_to_dict, to_dict, to_dict_fast
from fintrack.series.materializer import Materialization

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Write exports as JSON files under one directory."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print JSON output.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def write_batch(self, name: str, records: list[Any]) -> Path:
        """Write a list of records (dataclasses or dicts) to ``<name>.json``."""
        data = [to_dict(record) for record in records]
        path = self._dump(name, data)
        self._counts[name] = len(records)
        return path

    def write_month(
        self,
        materialization: Materialization,
        summary: MonthSummary | None = None,
    ) -> Path:
        """Write a materialized month, virtual occurrences flagged, to ``YYYY-MM.json``."""
        name = f"{materialization.year:04d}-{materialization.month:02d}"
        data: dict[str, Any] = {
            "month": materialization.month,
            "year": materialization.year,
            "transactions": [entry_to_dict(entry) for entry in materialization.entries],
            "warnings": [
                {"message": w.message, "record_id": w.record_id} for w in materialization.warnings
            ],
        }
        if summary is not None:
            data["summary"] = {
                **{k: v for k, v in to_dict_fast(summary).items() if k != "recent"},
                "balance": str(summary.balance),
            }
        path = self._dump(name, data)
        self._counts[name] = len(materialization.entries)
        return path

    def _dump(self, name: str, data: Any) -> Path:
        file_path = self.output_dir / f"{name}.json"
        with open(file_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            else:
                json.dump(data, f, ensure_ascii=False, default=str)
        return file_path

    @property
    def counts(self) -> dict[str, int]:
        return dict(self._counts)

    def close(self) -> None:
        """Log a summary of written files."""
        logger.info("JSON files written to: %s", self.output_dir)
        for name, count in self._counts.items():
            logger.info("  %s: %d records", name, count)
