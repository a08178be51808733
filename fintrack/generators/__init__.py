"""Sample data generators."""

from fintrack.generators.ledger import SampleLedgerGenerator

__all__ = ["SampleLedgerGenerator"]
