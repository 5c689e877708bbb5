"""Struct renderer — C++ value structs and their boundary marshalling.

For each struct the header declares the members plus two marshal functions::

    static S FromBoundaryValue(const py::dict& obj);
    py::dict ToBoundaryValue() const;

``FromBoundaryValue`` only assigns a member when the dict holds its key, so a
partial dict leaves the remaining members at their defaults.
``ToBoundaryValue`` sets every key.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from bridgegen.generators.code_builder import GENERATED_BANNER, CodeBuilder, cpp_string
from bridgegen.ir.models import FieldSchema, SchemaIR, StructSchema
from bridgegen.mapping.sanitizer import NameSanitizer
from bridgegen.mapping.type_mapper import DYNAMIC_STORAGE, TypeMapper


@dataclass(frozen=True)
class FieldLayout:
    """Names and types for one field, computed once per struct emission."""

    schema: FieldSchema
    member: str  # C++ member name (sanitized)
    key: str  # boundary dict key (original name)
    value_type: str  # C++ type of the value, without the optional wrapper

    @property
    def storage_type(self) -> str:
        if self.schema.is_optional:
            return f"std::optional<{self.value_type}>"
        return self.value_type


def field_layouts(
    struct: StructSchema, structs: Collection[str], sanitizer: NameSanitizer
) -> list[FieldLayout]:
    members = sanitizer.struct_members(struct.field_names(), structs)
    return [
        FieldLayout(
            schema=f,
            member=members[f.name],
            key=f.name,
            value_type=TypeMapper.cpp_type(f.value_type, structs),
        )
        for f in struct.fields
    ]


# --- Scalar / struct value expressions (shared with the bridge renderer) ---


def read_expression(handle: str, type_text: str, structs: Collection[str]) -> str:
    """C++ expression converting the Python value ``handle`` to a non-sequence type."""
    if type_text in structs:
        return f"{type_text}::FromBoundaryValue({handle}{TypeMapper.STRUCT_EXTRACTOR})"
    extractor = TypeMapper.resolve_extractor(type_text, structs)
    if extractor.fallback:
        return f"{handle}.cast<{DYNAMIC_STORAGE}>()"
    expression = f"{handle}{extractor.value}"
    if TypeMapper.is_precise_numeric(type_text):
        return f"static_cast<{TypeMapper.cpp_type(type_text)}>({expression})"
    return expression


def write_expression(value: str, type_text: str, structs: Collection[str]) -> str:
    """C++ expression converting the non-sequence ``value`` to a Python object."""
    if type_text in structs:
        return f"{value}.ToBoundaryValue()"
    constructor = TypeMapper.boundary_constructor(type_text)
    if constructor is None:
        # An unset py::object member is a null handle
        return f"({value} ? {value} : py::object(py::none()))"
    if TypeMapper.is_precise_numeric(type_text):
        return f"{constructor}(static_cast<double>({value}))"
    return f"{constructor}({value})"


class StructGenerator:
    """Renders the struct header and source for every struct in the IR."""

    def __init__(self, ir: SchemaIR, sanitizer: NameSanitizer | None = None):
        self.ir = ir
        self.sanitizer = sanitizer or NameSanitizer()
        self.struct_names = ir.struct_names
        self.layouts = {
            s.name: field_layouts(s, self.struct_names, self.sanitizer) for s in ir.structs
        }

    def render_header(self) -> str:
        b = CodeBuilder()
        b.line(f"// {GENERATED_BANNER}")
        b.line("#pragma once")
        b.blank()
        for include in ("cstddef", "cstdint", "optional", "string", "vector"):
            b.line(f"#include <{include}>")
        b.blank()
        b.line("#include <pybind11/pybind11.h>")
        b.blank()
        b.line("namespace py = pybind11;")
        b.blank()

        ordered = self.ir.ordered_structs()
        for struct in ordered:
            b.line(f"struct {struct.name};")
        if ordered:
            b.blank()

        for struct in ordered:
            with b.block(f"struct {struct.name} {{", "};"):
                for layout in self.layouts[struct.name]:
                    b.line(f"{layout.storage_type} {layout.member}{{}};")
                if struct.fields:
                    b.blank()
                b.line(f"static {struct.name} FromBoundaryValue(const py::dict& obj);")
                b.line("py::dict ToBoundaryValue() const;")
            b.blank()
        return b.render()

    def render_source(self, header_name: str) -> str:
        b = CodeBuilder()
        b.line(f"// {GENERATED_BANNER}")
        b.line(f'#include "{header_name}"')
        b.blank()
        b.line("#include <stdexcept>")
        b.blank()
        for struct in self.ir.ordered_structs():
            self._render_from_boundary(b, struct)
            b.blank()
            self._render_to_boundary(b, struct)
            b.blank()
        return b.render()

    # --- FromBoundaryValue ---

    def _render_from_boundary(self, b: CodeBuilder, struct: StructSchema) -> None:
        name = struct.name
        with b.block(f"{name} {name}::FromBoundaryValue(const py::dict& obj) {{"):
            b.line(f"{name} result;")
            with b.block("try {"):
                for layout in self.layouts[name]:
                    self._read_field(b, layout)
            with b.block("catch (const std::exception& e) {"):
                b.line(
                    f"throw std::runtime_error(std::string({cpp_string(f'Failed to parse {name}: ')})"
                    f" + e.what());"
                )
            b.line("return result;")

    def _read_field(self, b: CodeBuilder, layout: FieldLayout) -> None:
        key = cpp_string(layout.key)
        item = f"obj[{key}]"
        conditions = [f"obj.contains({key})"]
        if layout.schema.is_optional:
            conditions.append(f"!{item}.is_none()")
        if layout.schema.is_array:
            conditions.append(
                f"(py::isinstance<py::list>({item}) || py::isinstance<py::tuple>({item}))"
            )

        with b.block(f"if ({' && '.join(conditions)}) {{"):
            target = f"result.{layout.member}"
            if layout.schema.is_optional:
                b.line(f"{target}.emplace();")
                target = f"(*{target})"
            self._read_value(b, target, item, layout.schema.value_type, 0)

    def _read_value(self, b: CodeBuilder, target: str, handle: str, type_text: str, depth: int):
        inner = TypeMapper.sequence_inner(type_text)
        if inner is None:
            b.line(f"{target} = {read_expression(handle, type_text, self.struct_names)};")
            return
        seq, index = f"seq{depth}", f"i{depth}"
        b.line(f"py::sequence {seq} = {handle}{TypeMapper.SEQUENCE_EXTRACTOR};")
        b.line(f"{target}.resize({seq}.size());")
        with b.block(f"for (std::size_t {index} = 0; {index} < {seq}.size(); ++{index}) {{"):
            self._read_value(b, f"{target}[{index}]", f"{seq}[{index}]", inner, depth + 1)

    # --- ToBoundaryValue ---

    def _render_to_boundary(self, b: CodeBuilder, struct: StructSchema) -> None:
        with b.block(f"py::dict {struct.name}::ToBoundaryValue() const {{"):
            b.line("py::dict obj;")
            for layout in self.layouts[struct.name]:
                self._write_field(b, layout)
            b.line("return obj;")

    def _write_field(self, b: CodeBuilder, layout: FieldLayout) -> None:
        item = f"obj[{cpp_string(layout.key)}]"
        member = f"this->{layout.member}"
        type_text = layout.schema.value_type

        if layout.schema.is_optional:
            with b.block(f"if ({member}.has_value()) {{"):
                b.line(f"{item} = {self._write_value(b, f'(*{member})', type_text, 0)};")
            with b.block("else {"):
                b.line(f"{item} = py::none();")
        elif layout.schema.is_array:
            with b.block("{"):
                b.line(f"{item} = {self._write_value(b, member, type_text, 0)};")
        else:
            b.line(f"{item} = {self._write_value(b, member, type_text, 0)};")

    def _write_value(self, b: CodeBuilder, value: str, type_text: str, depth: int) -> str:
        """Emit any statements the conversion needs and return the result expression."""
        inner = TypeMapper.sequence_inner(type_text)
        if inner is None:
            return write_expression(value, type_text, self.struct_names)
        seq, index = f"seq{depth}", f"i{depth}"
        b.line(f"py::list {seq}({value}.size());")
        with b.block(f"for (std::size_t {index} = 0; {index} < {value}.size(); ++{index}) {{"):
            element = self._write_value(b, f"{value}[{index}]", inner, depth + 1)
            b.line(f"{seq}[{index}] = {element};")
        return seq
