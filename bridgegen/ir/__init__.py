"""Schema IR for the bridge generator.

One IR shape, two front ends:
- ``parse_from_source`` reads schema files with the ``ast`` module
- ``parse_from_live_annotations`` inspects imported, decorated objects

Both return an ``ExtractionResult``: the IR plus the diagnostics recorded
while building it.
"""

from bridgegen.ir.live_parser import parse_from_live_annotations
from bridgegen.ir.models import (
    Diagnostic,
    ExportSchema,
    ExtractionResult,
    FieldSchema,
    ParameterSchema,
    SchemaIR,
    Severity,
    StructSchema,
)
from bridgegen.ir.python_parser import parse_from_source

__all__ = [
    "Diagnostic",
    "ExportSchema",
    "ExtractionResult",
    "FieldSchema",
    "ParameterSchema",
    "SchemaIR",
    "Severity",
    "StructSchema",
    "parse_from_live_annotations",
    "parse_from_source",
]
