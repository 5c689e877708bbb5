"""Live front end — builds the IR from imported, decorated objects.

This reads the attributes set by ``bridgegen.markers`` instead of parsing
text, and hands the same raw declarations to ``SchemaBuilder`` as the source
front end does.
"""

from __future__ import annotations

import collections.abc
import inspect
import types
import typing
from collections.abc import Iterable

from bridgegen.ir.builder import RawExport, RawField, RawParam, RawStruct, SchemaBuilder
from bridgegen.ir.models import ExtractionResult
from bridgegen.markers import ASYNC, EXPORT_ATTR, STRUCT_ATTR, SYNC

_EMPTY = inspect.Parameter.empty

_ORIGIN_NAMES = {
    list: "list",
    collections.abc.Sequence: "Sequence",
}


def parse_from_live_annotations(objects: Iterable[object]) -> ExtractionResult:
    """Build the IR from modules, classes and functions.

    Modules contribute every class and function defined in them (imported
    names are skipped), in definition order.
    """
    builder = SchemaBuilder()
    for obj in objects:
        if inspect.ismodule(obj):
            for member in _module_members(obj):
                _collect(member, builder)
        else:
            _collect(obj, builder)
    return builder.build()


def _module_members(module: types.ModuleType) -> list[object]:
    return [
        value
        for value in vars(module).values()
        if (inspect.isclass(value) or inspect.isfunction(value))
        and getattr(value, "__module__", None) == module.__name__
    ]


def _collect(obj: object, builder: SchemaBuilder) -> None:
    if inspect.isclass(obj):
        if vars(obj).get(STRUCT_ATTR, False):
            builder.add_struct(_struct_from_class(obj))
        for name, raw in vars(obj).items():
            export = _export_from_member(name, raw, obj)
            if export is not None:
                builder.add_export(export)
    elif inspect.isfunction(obj):
        export = _export_from_member(obj.__name__, obj, None)
        if export is not None:
            builder.add_export(export)


def _struct_from_class(cls: type) -> RawStruct:
    location = _location(cls)
    annotations = inspect.get_annotations(cls)
    struct = RawStruct(name=cls.__name__, location=location)
    for name, annotation in annotations.items():
        struct.fields.append(
            RawField(name=name, annotation=annotation_text(annotation), location=f"{location}.{name}")
        )
    for name, value in vars(cls).items():
        if name in annotations or _is_dunder(name) or _is_member_function(value):
            continue
        struct.fields.append(RawField(name=name, annotation=None, location=f"{location}.{name}"))
    return struct


def _export_from_member(name: str, raw: object, owner: type | None) -> RawExport | None:
    func = raw.__func__ if isinstance(raw, staticmethod | classmethod) else raw
    mode = getattr(func, EXPORT_ATTR, None) if callable(func) else None
    if mode not in (SYNC, ASYNC):
        return None

    is_static = isinstance(raw, staticmethod)
    signature = inspect.signature(func)
    annotations = inspect.get_annotations(func)

    params = []
    positional = list(signature.parameters.values())
    if owner is not None and not is_static and positional:
        positional = positional[1:]  # self / cls
    for param in positional:
        annotation = annotation_text(annotations.get(param.name, _EMPTY))
        params.append(RawParam(name=param.name, annotation=annotation))

    return RawExport(
        method_name=name,
        owner=owner.__name__ if owner is not None else None,
        is_static=is_static,
        markers={mode},
        params=params,
        return_annotation=annotation_text(annotations.get("return", _EMPTY)),
        location=_location(func),
    )


def annotation_text(annotation: object) -> str | None:
    """Render a runtime annotation object back into schema source text."""
    if annotation is _EMPTY:
        return None
    if isinstance(annotation, str):
        # Postponed evaluation keeps the quotes of a string annotation ("f64[]")
        if len(annotation) >= 2 and annotation[0] in "'\"" and annotation[-1] == annotation[0]:
            return annotation[1:-1]
        return annotation
    if annotation is None or annotation is type(None):
        return "None"
    if isinstance(annotation, typing.NewType):
        return annotation.__name__

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)
    if origin is typing.Union or origin is types.UnionType:
        return " | ".join(annotation_text(a) for a in args)
    if origin is not None:
        origin_name = _ORIGIN_NAMES.get(origin, getattr(origin, "__name__", str(origin)))
        return f"{origin_name}[{', '.join(annotation_text(a) for a in args)}]"
    if isinstance(annotation, type):
        return annotation.__name__
    return str(annotation)


def _is_member_function(value: object) -> bool:
    return (
        inspect.isfunction(value)
        or isinstance(value, staticmethod | classmethod | property)
        or inspect.isclass(value)
    )


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _location(obj: object) -> str:
    return f"{getattr(obj, '__module__', '?')}.{getattr(obj, '__qualname__', '?')}"
