"""Facade renderer — the typed Python module callers import.

Each struct becomes a dataclass that converts itself to and from the plain
dicts the native module exchanges. Exports are grouped by owning class into
classes of static methods; async exports are ``async def`` methods awaiting
the future the native module returns. Owner-less exports become module-level
functions.
"""

from __future__ import annotations

from bridgegen.generators.code_builder import GENERATED_BANNER, CodeBuilder, py_string
from bridgegen.ir.models import ExportSchema, FieldSchema, SchemaIR, StructSchema
from bridgegen.mapping.type_mapper import TypeMapper

# Numeric kinds come back from the native side as Python floats
_CONVERTERS = {"int": "int", "float": "float"}


class FacadeGenerator:
    """Renders the facade module for one native module."""

    def __init__(self, ir: SchemaIR, module_name: str):
        self.ir = ir
        self.module_name = module_name
        self.struct_names = ir.struct_names
        # Class bodies see their own fields, so the factory helper needs a name no field uses
        taken = {f.name for s in ir.structs for f in s.fields}
        self.field_helper = "_field"
        while self.field_helper in taken:
            self.field_helper += "_"

    def render(self) -> str:
        b = CodeBuilder()
        b.line(f'"""Typed facade for the ``{self.module_name}`` extension module.')
        b.blank()
        b.line(GENERATED_BANNER)
        b.line('"""')
        b.blank()
        b.line("from __future__ import annotations")
        b.blank()
        b.line(f"from dataclasses import dataclass, field as {self.field_helper}")
        b.line("from typing import Any")
        b.blank()
        with b.block("try:", None):
            b.line(f"import {self.module_name} as _native")
        with b.block("except ImportError as e:", None):
            with b.block("raise ImportError(", ") from e"):
                b.line(py_string(f"Native module '{self.module_name}' is not built; compile the "))
                b.line(py_string("generated C++ sources together with implementation.cpp"))
        b.blank()
        b.line("BridgeError = _native.BridgeError")
        b.blank()
        b.line(f"__all__ = [{', '.join(py_string(n) for n in self._public_names())}]")

        groups = self.ir.exports_by_owner()
        for struct in self.ir.ordered_structs():
            b.blank(2)
            self._render_struct(b, struct, groups.get(struct.name, []))

        for owner, exports in groups.items():
            if owner is None or owner in self.struct_names:
                continue
            b.blank(2)
            with b.block(f"class {owner}:", None):
                b.line(f'"""Native methods exported from ``{owner}``."""')
                for export in exports:
                    b.blank()
                    self._render_export(b, export, method=True)

        for export in groups.get(None, []):
            b.blank(2)
            self._render_export(b, export, method=False)
        return b.render()

    def _public_names(self) -> list[str]:
        names = ["BridgeError"]
        names.extend(s.name for s in self.ir.ordered_structs())
        for owner, exports in self.ir.exports_by_owner().items():
            if owner is None:
                names.extend(e.method_name for e in exports)
            elif owner not in self.struct_names:
                names.append(owner)
        return names

    # --- Structs ---

    def _render_struct(self, b: CodeBuilder, struct: StructSchema, exports: list[ExportSchema]):
        b.line("@dataclass")
        with b.block(f"class {struct.name}:", None):
            for f in struct.fields:
                b.line(f"{f.name}: {self._annotation(f)} = {self._default(f, struct)}")
            b.blank()

            with b.block("def to_boundary(self) -> dict[str, Any]:", None):
                with b.block("return {", "}"):
                    for f in struct.fields:
                        value = self._outgoing(f"self.{f.name}", f)
                        b.line(f"{py_string(f.name)}: {value},")
            b.blank()

            b.line("@classmethod")
            with b.block(f"def from_boundary(cls, data: dict[str, Any]) -> {struct.name}:", None):
                b.line("result = cls()")
                for f in struct.fields:
                    key = py_string(f.name)
                    with b.block(f"if {key} in data:", None):
                        value = self._incoming(f"data[{key}]", f)
                        b.line(f"result.{f.name} = {value}")
                b.line("return result")

            for export in exports:
                b.blank()
                self._render_export(b, export, method=True)

    def _annotation(self, f: FieldSchema) -> str:
        display = TypeMapper.py_type(f.value_type, self.struct_names)
        return f"{display} | None" if f.is_optional else display

    def _default(self, f: FieldSchema, struct: StructSchema) -> str:
        if f.is_optional:
            return "None"
        factory = TypeMapper.default_factory(f.value_type, self.struct_names)
        if factory is None:
            return TypeMapper.display_default(f.value_type, self.struct_names)
        if factory in struct.field_names():
            # A lambda body skips the class namespace and finds the global name
            factory = f"lambda: {factory}()"
        return f"{self.field_helper}(default_factory={factory})"

    def _outgoing(self, value: str, f: FieldSchema) -> str:
        converted = self._convert_out(value, f.value_type, 0)
        if f.is_optional and converted != value:
            return f"None if {value} is None else {converted}"
        return converted

    def _incoming(self, value: str, f: FieldSchema) -> str:
        converted = self._convert_in(value, f.value_type, 0)
        if f.is_optional and converted != value:
            return f"None if {value} is None else {converted}"
        return converted

    def _convert_out(self, value: str, type_text: str, depth: int) -> str:
        inner = TypeMapper.sequence_inner(type_text)
        if inner is not None:
            return _comprehension(value, self._convert_out(f"v{depth}", inner, depth + 1), depth)
        if type_text in self.struct_names:
            return f"{value}.to_boundary()"
        return value

    def _convert_in(self, value: str, type_text: str, depth: int) -> str:
        inner = TypeMapper.sequence_inner(type_text)
        if inner is not None:
            return _comprehension(value, self._convert_in(f"v{depth}", inner, depth + 1), depth)
        if type_text in self.struct_names:
            return f"{type_text}.from_boundary({value})"
        converter = _CONVERTERS.get(TypeMapper.py_type(type_text, self.struct_names))
        return f"{converter}({value})" if converter else value

    # --- Exports ---

    def _render_export(self, b: CodeBuilder, export: ExportSchema, method: bool) -> None:
        name = export.method_name
        params = ""
        argument = ""
        if export.takes_input:
            param_display = TypeMapper.py_type(export.param_type, self.struct_names)
            params = f"{export.param_name}: {param_display}"
            argument = self._convert_out(export.param_name, export.param_type, 0)

        returns = "None"
        if export.returns_value:
            returns = TypeMapper.py_type(export.return_type, self.struct_names)

        call = f"_native.{export.name}({argument})"
        if export.is_async:
            call = f"await {call}"

        if method:
            b.line("@staticmethod")
        keyword = "async def" if export.is_async else "def"
        with b.block(f"{keyword} {name}({params}) -> {returns}:", None):
            b.line(f'"""Calls ``{self.module_name}.{export.name}``."""')
            if export.returns_value:
                b.line(f"return {self._convert_in(call, export.return_type, 0)}")
            else:
                b.line(call)


def _comprehension(value: str, element: str, depth: int) -> str:
    item = f"v{depth}"
    if element == item:
        return f"list({value})"
    return f"[{element} for {item} in {value}]"
