"""I/O exports."""

from .document import DocumentNode, parse_xml, read_xml
from .loader import ConfigLoader, ValidationIssue
from .schema import CONFIG_SCHEMA, ELEMENT_SETS_SCHEMA
from .trace import TraceFile, format_event, trace_file_name

__all__ = [
    "CONFIG_SCHEMA",
    "ConfigLoader",
    "DocumentNode",
    "ELEMENT_SETS_SCHEMA",
    "TraceFile",
    "ValidationIssue",
    "format_event",
    "parse_xml",
    "read_xml",
    "trace_file_name",
]
