"""Personal-finance transaction series: model, materialization and API client."""

__version__ = "0.1.0"
