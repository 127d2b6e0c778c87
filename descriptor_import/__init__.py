"""Marking-scheme descriptor import package."""

from .config import ImportConfig
from .importer import BatchImporter, ImportAbortedError, ImportCancelledError
from .judgement_parser import parse_judgement_descriptors
from .pipeline import ImportReport, run_import
from .store import SqliteDescriptorStore
from .tabular_parser import parse_marking_scheme
from .validation import DescriptorImport, validate_descriptor, validate_descriptor_batch

__all__ = [
    "BatchImporter",
    "DescriptorImport",
    "ImportAbortedError",
    "ImportCancelledError",
    "ImportConfig",
    "ImportReport",
    "SqliteDescriptorStore",
    "parse_judgement_descriptors",
    "parse_marking_scheme",
    "run_import",
    "validate_descriptor",
    "validate_descriptor_batch",
]
