"""Vehicle listing spreadsheet ingestion: column mapping, taxonomy matching, validation and batch import."""

__version__ = "0.1.0"
