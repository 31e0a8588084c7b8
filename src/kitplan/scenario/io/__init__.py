"""Planning snapshot loading and export helpers."""

from .loaders import load_records, load_snapshot, read_csv, write_jobs

__all__ = ["load_records", "load_snapshot", "read_csv", "write_jobs"]
