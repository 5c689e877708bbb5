"""Artifact emitter — renders every output file and writes them to disk.

Machine-owned files (struct, bridge, runtime, facade) are fully rewritten on
every run, each through a temporary file and ``os.replace``. The
implementation stub is hand-editable and is only written when absent.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from bridgegen.config import BridgeConfig
from bridgegen.generators.bridge_generator import BridgeGenerator
from bridgegen.generators.facade_generator import FacadeGenerator
from bridgegen.generators.struct_generator import StructGenerator
from bridgegen.generators.stub_generator import StubGenerator
from bridgegen.ir.models import Diagnostic, ExtractionResult, SchemaIR, Severity
from bridgegen.mapping.sanitizer import NameSanitizer

logger = logging.getLogger(__name__)

RUNTIME_TEMPLATE = "bridge_runtime.hpp"


class GenerationError(Exception):
    """Raised when a generation run cannot produce its output."""


@dataclass
class EmissionResult:
    """Outcome of one emission run.

    Attributes:
        written: Files that were (re)written.
        skipped: Hand-editable files left untouched because they already exist.
        diagnostics: Emission-time diagnostics (e.g. ``STUB_EXISTS``).
    """

    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def load_runtime_template() -> str:
    """Read the static runtime header shipped with the package."""
    try:
        template = resources.files("bridgegen.generators") / "templates" / RUNTIME_TEMPLATE
        return template.read_text(encoding="utf-8")
    except OSError as e:
        raise GenerationError(f"Cannot read runtime template {RUNTIME_TEMPLATE}: {e}") from e


def write_atomic(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` without ever leaving a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ArtifactEmitter:
    """Renders all artifacts for one IR."""

    def __init__(
        self,
        ir: SchemaIR,
        config: BridgeConfig | None = None,
        sanitizer: NameSanitizer | None = None,
    ):
        self.ir = ir
        self.config = config or BridgeConfig()
        self.structs = StructGenerator(ir, sanitizer)
        self.bridge = BridgeGenerator(ir, self.config.module_name, sanitizer)
        self.facade = FacadeGenerator(ir, self.config.module_name)
        self.stub = StubGenerator(ir, self.bridge)

    def render(self) -> dict[str, str]:
        """Machine-owned artifacts, keyed by output file name."""
        names = self.config.output
        return {
            names.structs_header: self.structs.render_header(),
            names.structs_source: self.structs.render_source(names.structs_header),
            names.api_header: self.bridge.render_header(names.structs_header, names.runtime_header),
            names.api_source: self.bridge.render_source(names.api_header),
            names.runtime_header: load_runtime_template(),
            names.facade: self.facade.render(),
        }

    def render_stub(self) -> str:
        return self.stub.render(self.config.output.api_header)

    def emit(self, output_dir: str | Path) -> EmissionResult:
        """Render everything, then write it under ``output_dir``."""
        output_dir = Path(output_dir)
        artifacts = self.render()
        result = EmissionResult()

        for name, content in artifacts.items():
            path = output_dir / name
            write_atomic(path, content)
            logger.debug("Wrote %s", path)
            result.written.append(path)

        stub_path = output_dir / self.config.output.stub
        if stub_path.exists():
            diagnostic = Diagnostic(
                severity=Severity.INFO,
                code="STUB_EXISTS",
                message=f"{stub_path.name} already exists and was left untouched",
                location=str(stub_path),
            )
            logger.info("%s", diagnostic)
            result.diagnostics.append(diagnostic)
            result.skipped.append(stub_path)
        else:
            write_atomic(stub_path, self.render_stub())
            logger.debug("Wrote %s", stub_path)
            result.written.append(stub_path)
        return result


def generate(
    extraction: ExtractionResult,
    output_dir: str | Path,
    config: BridgeConfig | None = None,
) -> EmissionResult:
    """Emit artifacts for an extraction result.

    Raises:
        GenerationError: If the extraction recorded errors.
    """
    if not extraction.passed:
        raise GenerationError(
            f"Schema has {len(extraction.errors)} error(s); nothing was generated"
        )
    return ArtifactEmitter(extraction.ir, config).emit(output_dir)
