"""IR data models — the schema both front ends build and every emitter reads.

The IR is plain, serializable data: it owns no external resources and lives
for the duration of one generation run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from bridgegen.mapping.type_mapper import VOID, TypeMapper, leaf_type


class Severity(Enum):
    ERROR = "error"  # Blocks generation
    WARNING = "warning"  # Degraded output, generation continues
    INFO = "info"


@dataclass
class Diagnostic:
    """A single issue found while building the IR."""

    severity: Severity
    code: str  # Machine-readable issue code
    message: str
    location: str = ""  # "path:line" or "Struct.field"

    def __str__(self) -> str:
        where = f" ({self.location})" if self.location else ""
        return f"[{self.code}] {self.message}{where}"


# --- Core IR Nodes ---


@dataclass
class FieldSchema:
    """A struct field. ``semantic_type`` is the element type when ``is_array``."""

    name: str
    semantic_type: str
    is_array: bool = False
    is_optional: bool = False

    @property
    def value_type(self) -> str:
        """The full value type, with the array layer re-applied."""
        return f"list[{self.semantic_type}]" if self.is_array else self.semantic_type


@dataclass
class StructSchema:
    name: str
    fields: list[FieldSchema] = field(default_factory=list)

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


@dataclass
class ParameterSchema:
    name: str
    semantic_type: str


@dataclass
class ExportSchema:
    """An operation callable across the boundary."""

    name: str  # Boundary entry point: Owner_method, or the bare function name
    method_name: str
    owning_class_name: str | None = None
    is_static: bool = False
    is_async: bool = False
    param_type: str = VOID
    return_type: str = VOID
    parameters: list[ParameterSchema] = field(default_factory=list)

    @property
    def takes_input(self) -> bool:
        return not TypeMapper.is_void(self.param_type)

    @property
    def returns_value(self) -> bool:
        return not TypeMapper.is_void(self.return_type)

    @property
    def param_name(self) -> str:
        return self.parameters[0].name if self.parameters else "value"

    @property
    def worker_name(self) -> str:
        return f"{self.name}_AsyncWorker"


@dataclass
class SchemaIR:
    """The complete IR for one generation run."""

    structs: list[StructSchema] = field(default_factory=list)
    exports: list[ExportSchema] = field(default_factory=list)

    @property
    def struct_names(self) -> set[str]:
        return {s.name for s in self.structs}

    @property
    def sync_exports(self) -> list[ExportSchema]:
        return [e for e in self.exports if not e.is_async]

    @property
    def async_exports(self) -> list[ExportSchema]:
        return [e for e in self.exports if e.is_async]

    def get_struct(self, name: str) -> StructSchema | None:
        for s in self.structs:
            if s.name == name:
                return s
        return None

    def exports_by_owner(self) -> dict[str | None, list[ExportSchema]]:
        """Group exports by owning class, preserving first-seen order."""
        groups: dict[str | None, list[ExportSchema]] = {}
        for export in self.exports:
            groups.setdefault(export.owning_class_name, []).append(export)
        return groups

    def struct_dependencies(self, struct: StructSchema) -> list[str]:
        """Names of other structs that ``struct`` holds by value."""
        names = self.struct_names
        deps = []
        for f in struct.fields:
            leaf = leaf_type(f.semantic_type)
            if leaf in names and leaf != struct.name and leaf not in deps:
                deps.append(leaf)
        return deps

    def holds_dynamic(self, type_text: str) -> bool:
        """Whether a value of this type contains an unresolved (dynamic) value."""
        return self._holds_dynamic(type_text, set())

    def _holds_dynamic(self, type_text: str, seen: set[str]) -> bool:
        leaf = leaf_type(type_text)
        if TypeMapper.is_scalar(leaf):
            return False
        struct = self.get_struct(leaf)
        if struct is None:
            return True
        if leaf in seen:
            return False
        seen.add(leaf)
        return any(self._holds_dynamic(f.semantic_type, seen) for f in struct.fields)

    def ordered_structs(self) -> list[StructSchema]:
        """Structs in declaration order, each after the structs it contains.

        Source order is kept wherever dependencies allow. Structs caught in a
        cycle keep their source order.
        """
        by_name = {s.name: s for s in self.structs}
        ordered: list[StructSchema] = []
        visiting: set[str] = set()
        done: set[str] = set()

        def visit(name: str):
            if name in done or name in visiting:
                return
            visiting.add(name)
            for dep in self.struct_dependencies(by_name[name]):
                visit(dep)
            visiting.discard(name)
            done.add(name)
            ordered.append(by_name[name])

        for s in self.structs:
            visit(s.name)
        return ordered

    # --- Serialization ---

    def to_dict(self) -> dict:
        return {
            "structs": [
                {
                    "name": s.name,
                    "fields": [
                        {
                            "name": f.name,
                            "semantic_type": f.semantic_type,
                            "is_array": f.is_array,
                            "is_optional": f.is_optional,
                        }
                        for f in s.fields
                    ],
                }
                for s in self.structs
            ],
            "exports": [
                {
                    "name": e.name,
                    "owning_class_name": e.owning_class_name,
                    "method_name": e.method_name,
                    "is_static": e.is_static,
                    "is_async": e.is_async,
                    "param_type": e.param_type,
                    "return_type": e.return_type,
                    "parameters": [
                        {"name": p.name, "semantic_type": p.semantic_type}
                        for p in e.parameters
                    ],
                }
                for e in self.exports
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> SchemaIR:
        structs = [
            StructSchema(
                name=s["name"],
                fields=[
                    FieldSchema(
                        name=f["name"],
                        semantic_type=f["semantic_type"],
                        is_array=f.get("is_array", False),
                        is_optional=f.get("is_optional", False),
                    )
                    for f in s.get("fields", [])
                ],
            )
            for s in data.get("structs", [])
        ]
        exports = [
            ExportSchema(
                name=e["name"],
                method_name=e.get("method_name", e["name"]),
                owning_class_name=e.get("owning_class_name"),
                is_static=e.get("is_static", False),
                is_async=e.get("is_async", False),
                param_type=e.get("param_type", VOID),
                return_type=e.get("return_type", VOID),
                parameters=[
                    ParameterSchema(name=p["name"], semantic_type=p["semantic_type"])
                    for p in e.get("parameters", [])
                ],
            )
            for e in data.get("exports", [])
        ]
        return cls(structs=structs, exports=exports)


@dataclass
class ExtractionResult:
    """IR plus every diagnostic recorded while building it."""

    ir: SchemaIR = field(default_factory=SchemaIR)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def codes(self) -> list[str]:
        return [d.code for d in self.diagnostics]

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return (
            f"[{status}] {len(self.ir.structs)} struct(s), {len(self.ir.exports)} export(s), "
            f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)"
        )
