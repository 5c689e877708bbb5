"""bridgegen — schema-driven native bridge generator.

Reads Python classes and functions marked with ``bridgegen.markers`` and emits:
- C++ value structs with marshalling to and from Python objects
- a pybind11 invocation bridge (synchronous and background-worker exports)
- a typed Python facade that hides the native module
"""

__version__ = "0.3.0"
