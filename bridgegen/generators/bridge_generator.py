"""Invocation-bridge renderer — pybind11 entry points for every export.

The API header declares the native functions the hand-written implementation
must define, plus one ``Name_AsyncWorker`` class per async export. The API
source defines the wrappers and the ``PYBIND11_MODULE`` block that registers
each export under its boundary name.
"""

from __future__ import annotations

from bridgegen.generators.code_builder import GENERATED_BANNER, CodeBuilder, cpp_string
from bridgegen.generators.struct_generator import read_expression, write_expression
from bridgegen.ir.models import ExportSchema, SchemaIR
from bridgegen.mapping.sanitizer import NameSanitizer
from bridgegen.mapping.type_mapper import VOID, TypeMapper


class BridgeGenerator:
    """Renders the API header and source."""

    def __init__(self, ir: SchemaIR, module_name: str, sanitizer: NameSanitizer | None = None):
        self.ir = ir
        self.module_name = module_name
        self.sanitizer = sanitizer or NameSanitizer()
        self.struct_names = ir.struct_names

    # --- Type helpers ---

    def native_type(self, type_text: str) -> str:
        if TypeMapper.is_void(type_text):
            return VOID
        return TypeMapper.cpp_type(type_text, self.struct_names)

    def declaration(self, export: ExportSchema) -> str:
        """``Ret Name(const Param& param)`` for one export."""
        params = ""
        if export.takes_input:
            param_name = self.sanitizer.sanitize(export.param_name)
            params = f"const {self.native_type(export.param_type)}& {param_name}"
        return f"{self.native_type(export.return_type)} {export.name}({params})"

    # --- Header ---

    def render_header(self, structs_header: str, runtime_header: str) -> str:
        b = CodeBuilder()
        b.line(f"// {GENERATED_BANNER}")
        b.line("#pragma once")
        b.blank()
        b.line(f'#include "{runtime_header}"')
        b.line(f'#include "{structs_header}"')
        b.blank()

        if self.ir.exports:
            b.line("// Defined by the hand-written implementation file")
            for export in self.ir.exports:
                b.line(f"{self.declaration(export)};")
            b.blank()

        for export in self.ir.async_exports:
            self._render_worker_class(b, export)
            b.blank()
        return b.render()

    def _render_worker_class(self, b: CodeBuilder, export: ExportSchema) -> None:
        worker = export.worker_name
        with b.block(f"class {worker} : public bridge::AsyncWorker {{", "};"):
            b.line("public:")
            with b.indented():
                if export.takes_input:
                    param_type = self.native_type(export.param_type)
                    b.line(f"explicit {worker}({param_type} input) : input_(std::move(input)) {{}}")
                else:
                    b.line(f"{worker}() = default;")
            b.blank()
            b.line("protected:")
            with b.indented():
                b.line("void Execute() override;")
                b.line("py::object OnOK() override;")
            if export.takes_input or export.returns_value:
                b.blank()
                b.line("private:")
                with b.indented():
                    if export.takes_input:
                        b.line(f"{self.native_type(export.param_type)} input_;")
                    if export.returns_value:
                        b.line(f"{self.native_type(export.return_type)} result_{{}};")

    # --- Source ---

    def render_source(self, api_header: str) -> str:
        b = CodeBuilder()
        b.line(f"// {GENERATED_BANNER}")
        b.line(f'#include "{api_header}"')
        b.blank()
        for include in ("memory", "stdexcept", "string", "utility"):
            b.line(f"#include <{include}>")
        b.blank()

        for export in self.ir.async_exports:
            self._render_worker_methods(b, export)
            b.blank()

        with b.block("namespace {", "}  // namespace"):
            b.blank()
            for export in self.ir.exports:
                self._render_wrapper(b, export)
                b.blank()
        b.blank()

        with b.block(f"PYBIND11_MODULE({self.module_name}, m) {{"):
            b.line(f"m.doc() = {cpp_string('Native bridge generated by bridgegen')};")
            b.line("bridge::RegisterErrorType(m);")
            for export in self.ir.exports:
                b.line(f"m.def({cpp_string(export.name)}, &{export.name}_wrapper);")
        return b.render()

    def _render_worker_methods(self, b: CodeBuilder, export: ExportSchema) -> None:
        worker = export.worker_name
        call = f"{export.name}({'input_' if export.takes_input else ''})"
        with b.block(f"void {worker}::Execute() {{"):
            b.line(f"result_ = {call};" if export.returns_value else f"{call};")
        b.blank()
        with b.block(f"py::object {worker}::OnOK() {{"):
            if export.returns_value:
                b.line(f"return {write_expression('result_', export.return_type, self.struct_names)};")
            else:
                b.line("return py::none();")

    def _render_wrapper(self, b: CodeBuilder, export: ExportSchema) -> None:
        with b.block(f"py::object {export.name}_wrapper(py::args args) {{"):
            if export.takes_input:
                self._render_argument_check(b, export)
            with b.block("try {"):
                input_expr = ""
                if export.takes_input:
                    param_type = self.native_type(export.param_type)
                    read = read_expression("args[0]", export.param_type, self.struct_names)
                    b.line(f"{param_type} input = {read};")
                    input_expr = "input"
                if export.is_async:
                    self._render_async_body(b, export, input_expr)
                else:
                    self._render_sync_body(b, export, input_expr)
            with b.block("catch (const py::error_already_set&) {"):
                b.line("throw;")
            with b.block("catch (const std::exception& e) {"):
                b.line(
                    f"throw bridge::BridgeError(std::string({cpp_string(export.name + ': ')})"
                    f" + e.what());"
                )

    def _render_argument_check(self, b: CodeBuilder, export: ExportSchema) -> None:
        if export.param_type in self.struct_names:
            condition = "args.size() < 1 || !py::isinstance<py::dict>(args[0])"
            message = f"{export.name}: argument 0 must be a dict"
        else:
            condition = "args.size() < 1"
            message = f"{export.name}: expected 1 argument"
        with b.block(f"if ({condition}) {{"):
            b.line(f"throw py::type_error({cpp_string(message)});")

    def _render_sync_body(self, b: CodeBuilder, export: ExportSchema, input_expr: str) -> None:
        call = f"{export.name}({input_expr})"
        # Native code may only run without the GIL when it holds no Python objects
        release_gil = not any(
            not TypeMapper.is_void(t) and self.ir.holds_dynamic(t)
            for t in (export.param_type, export.return_type)
        )

        if export.returns_value:
            b.line(f"{self.native_type(export.return_type)} result{{}};")
            statement = f"result = {call};"
        else:
            statement = f"{call};"

        if release_gil:
            with b.block("{"):
                b.line("py::gil_scoped_release release;")
                b.line(statement)
        else:
            b.line(statement)

        if export.returns_value:
            b.line(f"return {write_expression('result', export.return_type, self.struct_names)};")
        else:
            b.line("return py::none();")

    def _render_async_body(self, b: CodeBuilder, export: ExportSchema, input_expr: str) -> None:
        argument = f"std::move({input_expr})" if input_expr else ""
        b.line(f"auto worker = std::make_unique<{export.worker_name}>({argument});")
        b.line("return bridge::AsyncWorker::Queue(std::move(worker));")
