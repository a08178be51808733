"""Export sinks."""

from fintrack.sinks.json_file import JsonFileSink

__all__ = ["JsonFileSink"]
