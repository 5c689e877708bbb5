"""Markers for schema source files.

Schema authors decorate plain Python classes and functions::

    from bridgegen.markers import export, export_async, f64, native_struct

    @native_struct
    class InputData:
        name: str
        value: f64
        numbers: list[f64]

    class Solver:
        @staticmethod
        @export
        def process(data: InputData) -> OutputData: ...

The source front end only looks at decorator names, so these functions never
need to run for ``bridgegen generate``. They matter for the live front end,
which reads the attributes they set.
"""

from __future__ import annotations

from typing import NewType

# Precision-qualified numeric types. NewType keeps the name visible at runtime.
i8 = NewType("i8", int)
u8 = NewType("u8", int)
i16 = NewType("i16", int)
u16 = NewType("u16", int)
i32 = NewType("i32", int)
u32 = NewType("u32", int)
i64 = NewType("i64", int)
u64 = NewType("u64", int)
f32 = NewType("f32", float)
f64 = NewType("f64", float)

STRUCT_ATTR = "__bridge_struct__"
EXPORT_ATTR = "__bridge_export__"

SYNC = "sync"
ASYNC = "async"


def native_struct(cls=None):
    """Mark a class as a value struct. Usable with or without parentheses."""

    def wrap(target):
        setattr(target, STRUCT_ATTR, True)
        return target

    if cls is None:
        return wrap
    return wrap(cls)


def _mark_export(obj, mode: str):
    # staticmethod/classmethod wrappers: mark the underlying function
    target = getattr(obj, "__func__", obj)
    setattr(target, EXPORT_ATTR, mode)
    return obj


def export(fn=None):
    """Mark a static method or module-level function as a synchronous export."""
    if fn is None:
        return lambda f: _mark_export(f, SYNC)
    return _mark_export(fn, SYNC)


def export_async(fn=None):
    """Mark a static method or module-level function as a background-worker export."""
    if fn is None:
        return lambda f: _mark_export(f, ASYNC)
    return _mark_export(fn, ASYNC)
