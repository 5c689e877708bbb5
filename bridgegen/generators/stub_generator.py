"""Implementation stub — the one hand-editable output file.

It defines every native function declared in the API header with a default
body. The emitter writes it only when no file exists at its path.
"""

from __future__ import annotations

from bridgegen.generators.bridge_generator import BridgeGenerator
from bridgegen.generators.code_builder import CodeBuilder
from bridgegen.ir.models import SchemaIR


class StubGenerator:
    """Renders ``implementation.cpp``."""

    def __init__(self, ir: SchemaIR, bridge: BridgeGenerator):
        self.ir = ir
        self.bridge = bridge

    def render(self, api_header: str) -> str:
        b = CodeBuilder()
        b.line(f"// Implementations of the native functions declared in {api_header}.")
        b.line("// bridgegen creates this file once and never overwrites it.")
        b.line(f'#include "{api_header}"')
        b.blank()
        for export in self.ir.exports:
            mode = "background thread, without the GIL" if export.is_async else "calling thread"
            b.line(f"// Runs on the {mode}")
            with b.block(f"{self.bridge.declaration(export)} {{"):
                b.line(f"// TODO: implement {export.name}")
                if export.returns_value:
                    b.line("return {};")
            b.blank()
        return b.render()
