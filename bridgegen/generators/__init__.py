"""Artifact renderers: C++ structs, the pybind11 bridge, the Python facade."""

from bridgegen.generators.artifact_emitter import (
    ArtifactEmitter,
    EmissionResult,
    GenerationError,
    generate,
)

__all__ = ["ArtifactEmitter", "EmissionResult", "GenerationError", "generate"]
