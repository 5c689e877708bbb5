"""Schema builder — turns raw declarations into a validated IR.

Both front ends (source parsing and live reflection) only collect raw
declarations. Every naming, typing and signature rule lives here, so the two
front ends cannot disagree about what a declaration means.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

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
from bridgegen.mapping.sanitizer import NameSanitizer
from bridgegen.mapping.type_mapper import VOID, TypeMapper

logger = logging.getLogger(__name__)

DYNAMIC_TYPE = "Any"

_LOG_LEVELS = {
    Severity.ERROR: logging.ERROR,
    Severity.WARNING: logging.WARNING,
    Severity.INFO: logging.INFO,
}


# --- Raw declarations produced by the front ends ---


@dataclass
class RawField:
    name: str
    annotation: str | None  # None when the attribute has no type annotation
    location: str = ""


@dataclass
class RawStruct:
    name: str
    fields: list[RawField] = field(default_factory=list)
    location: str = ""


@dataclass
class RawParam:
    name: str
    annotation: str | None = None


@dataclass
class RawExport:
    method_name: str
    owner: str | None = None
    is_static: bool = False
    markers: set[str] = field(default_factory=set)  # subset of {"sync", "async"}
    params: list[RawParam] = field(default_factory=list)
    return_annotation: str | None = None
    location: str = ""


class SchemaBuilder:
    """Collects raw declarations and builds an ExtractionResult."""

    def __init__(self, sanitizer: NameSanitizer | None = None):
        self.sanitizer = sanitizer or NameSanitizer()
        self.diagnostics: list[Diagnostic] = []
        self._structs: list[RawStruct] = []
        self._exports: list[RawExport] = []

    def add_struct(self, raw: RawStruct) -> None:
        self._structs.append(raw)

    def add_export(self, raw: RawExport) -> None:
        self._exports.append(raw)

    def report(self, severity: Severity, code: str, message: str, location: str = "") -> None:
        diagnostic = Diagnostic(severity=severity, code=code, message=message, location=location)
        logger.log(_LOG_LEVELS[severity], "%s", diagnostic)
        self.diagnostics.append(diagnostic)

    def build(self) -> ExtractionResult:
        ir = SchemaIR()

        accepted: list[RawStruct] = []
        for raw in self._structs:
            if any(s.name == raw.name for s in accepted):
                self.report(
                    Severity.ERROR,
                    "DUPLICATE_STRUCT",
                    f"Struct '{raw.name}' is declared more than once; later declaration ignored",
                    raw.location,
                )
                continue
            if self.sanitizer.is_reserved(raw.name):
                self.report(
                    Severity.ERROR,
                    "RESERVED_IDENTIFIER",
                    f"Struct name '{raw.name}' is a C++ reserved word",
                    raw.location,
                )
                continue
            accepted.append(raw)

        names = {s.name for s in accepted}
        for raw in accepted:
            ir.structs.append(self._build_struct(raw, names))

        for raw in self._exports:
            export = self._build_export(raw, names)
            if export is None:
                continue
            if any(e.name == export.name for e in ir.exports):
                self.report(
                    Severity.ERROR,
                    "DUPLICATE_EXPORT",
                    f"Boundary name '{export.name}' is exported more than once",
                    raw.location,
                )
                continue
            ir.exports.append(export)

        for export in ir.async_exports:
            self._check_async_values(export, ir)

        return ExtractionResult(ir=ir, diagnostics=list(self.diagnostics))

    # --- Structs ---

    def _build_struct(self, raw: RawStruct, struct_names: set[str]) -> StructSchema:
        struct = StructSchema(name=raw.name)
        locations: dict[str, str] = {}
        for raw_field in raw.fields:
            where = raw_field.location or f"{raw.name}.{raw_field.name}"

            if raw_field.annotation is None:
                self.report(
                    Severity.ERROR,
                    "UNTYPED_FIELD",
                    f"Field '{raw.name}.{raw_field.name}' has no type annotation",
                    where,
                )
                continue

            annotation = TypeMapper.normalize(raw_field.annotation)
            if _is_class_var(annotation):
                continue

            if raw_field.name in struct.field_names():
                self.report(
                    Severity.ERROR,
                    "DUPLICATE_FIELD",
                    f"Field '{raw.name}.{raw_field.name}' is declared more than once",
                    where,
                )
                continue

            struct.fields.append(self._build_field(raw.name, raw_field, annotation, struct_names, where))
            locations[raw_field.name] = where

        members = self.sanitizer.struct_members(struct.field_names(), struct_names)
        for name, member in members.items():
            if member != name:
                self.report(
                    Severity.WARNING,
                    "RESERVED_IDENTIFIER",
                    f"Field '{raw.name}.{name}' clashes with a C++ reserved word or generated "
                    f"name and will be renamed to '{member}' in generated code",
                    locations[name],
                )
        return struct

    def _build_field(
        self,
        struct_name: str,
        raw_field: RawField,
        annotation: str,
        struct_names: set[str],
        where: str,
    ) -> FieldSchema:
        optional_inner = TypeMapper.optional_inner(annotation)
        base = optional_inner if optional_inner is not None else annotation
        element = TypeMapper.sequence_inner(base)

        schema = FieldSchema(
            name=raw_field.name,
            semantic_type=element if element is not None else base,
            is_array=element is not None,
            is_optional=optional_inner is not None,
        )

        if not TypeMapper.is_known(schema.semantic_type, struct_names):
            self.report(
                Severity.WARNING,
                "UNRESOLVED_TYPE",
                f"Type '{schema.semantic_type}' of '{struct_name}.{schema.name}' is not a "
                f"known type; kept verbatim and treated as dynamic",
                where,
            )
        return schema

    # --- Exports ---

    def _build_export(self, raw: RawExport, struct_names: set[str]) -> ExportSchema | None:
        label = f"{raw.owner}.{raw.method_name}" if raw.owner else raw.method_name

        if len(raw.markers) > 1:
            self.report(
                Severity.ERROR,
                "CONFLICTING_MARKERS",
                f"'{label}' is marked both as a synchronous and an asynchronous export",
                raw.location,
            )
            return None

        if raw.owner and not raw.is_static:
            self.report(
                Severity.WARNING,
                "NON_STATIC_EXPORT",
                f"'{label}' is not a static method and will not be exported",
                raw.location,
            )
            return None

        if len(raw.params) > 1:
            self.report(
                Severity.ERROR,
                "EXTRA_PARAMETERS",
                f"'{label}' declares {len(raw.params)} parameters; exports take a single input",
                raw.location,
            )
            return None

        name = f"{raw.owner}_{raw.method_name}" if raw.owner else raw.method_name
        if self.sanitizer.is_reserved(name):
            self.report(
                Severity.ERROR,
                "RESERVED_IDENTIFIER",
                f"Export name '{name}' is a C++ reserved word",
                raw.location,
            )
            return None

        parameters = [
            ParameterSchema(
                name=p.name,
                semantic_type=TypeMapper.normalize(p.annotation) if p.annotation else DYNAMIC_TYPE,
            )
            for p in raw.params
        ]
        param_type = parameters[0].semantic_type if parameters else VOID
        return_type = VOID
        if raw.return_annotation is not None and not TypeMapper.is_void(raw.return_annotation):
            return_type = TypeMapper.normalize(raw.return_annotation)

        for role, type_text in (("parameter", param_type), ("return", return_type)):
            if TypeMapper.is_void(type_text):
                continue
            if TypeMapper.is_sequence(type_text) or TypeMapper.optional_inner(type_text):
                self.report(
                    Severity.ERROR,
                    "UNSUPPORTED_SIGNATURE",
                    f"'{label}' {role} type '{type_text}' must be a struct or a scalar",
                    raw.location,
                )
                return None
            if not TypeMapper.is_known(type_text, struct_names):
                self.report(
                    Severity.WARNING,
                    "UNRESOLVED_TYPE",
                    f"'{label}' {role} type '{type_text}' is not a known type; "
                    f"treated as dynamic",
                    raw.location,
                )

        return ExportSchema(
            name=name,
            method_name=raw.method_name,
            owning_class_name=raw.owner,
            is_static=raw.is_static,
            is_async="async" in raw.markers,
            param_type=param_type,
            return_type=return_type,
            parameters=parameters,
        )

    def _check_async_values(self, export: ExportSchema, ir: SchemaIR) -> None:
        for type_text in (export.param_type, export.return_type):
            if not TypeMapper.is_void(type_text) and ir.holds_dynamic(type_text):
                self.report(
                    Severity.WARNING,
                    "DYNAMIC_IN_ASYNC",
                    f"Async export '{export.name}' moves dynamic values; they must not be "
                    f"touched from the background thread",
                )
                return


def _is_class_var(annotation: str) -> bool:
    return annotation.startswith(("ClassVar[", "typing.ClassVar[")) or annotation in (
        "ClassVar",
        "typing.ClassVar",
    )

