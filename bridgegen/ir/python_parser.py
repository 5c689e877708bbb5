"""Python source front end — builds the IR from schema files using AST.

Decorators are matched by name text only (``native_struct``,
``bridgegen.markers.native_struct`` and ``native_struct()`` all match); the
parser never resolves what a decorator name is bound to.
"""

from __future__ import annotations

import ast
from collections.abc import Iterable
from pathlib import Path

from bridgegen.config import MarkerConfig
from bridgegen.ir.builder import RawExport, RawField, RawParam, RawStruct, SchemaBuilder
from bridgegen.ir.models import ExtractionResult, Severity


def parse_from_source(
    paths: Iterable[str | Path],
    markers: MarkerConfig | None = None,
    repo_root: str | Path = "",
) -> ExtractionResult:
    """Parse schema source files into an IR.

    Args:
        paths: Python files to scan, in order.
        markers: Decorator names to recognise. Defaults to ``MarkerConfig()``.
        repo_root: Root used to shorten locations in diagnostics.

    Raises:
        OSError: If a file cannot be read.
    """
    markers = markers or MarkerConfig()
    builder = SchemaBuilder()
    for path in paths:
        collect_source_file(path, builder, markers, repo_root)
    return builder.build()


def collect_source_file(
    file_path: str | Path,
    builder: SchemaBuilder,
    markers: MarkerConfig,
    repo_root: str | Path = "",
) -> None:
    """Add the structs and exports declared in one file to ``builder``."""
    file_path = Path(file_path)
    source = file_path.read_text(errors="replace")
    display_path = _display_path(file_path, repo_root)

    try:
        tree = ast.parse(source, filename=str(file_path))
    except SyntaxError as e:
        builder.report(
            Severity.ERROR,
            "SYNTAX_ERROR",
            f"Cannot parse schema file: {e.msg}",
            f"{display_path}:{e.lineno or 0}",
        )
        return

    for node in ast.iter_child_nodes(tree):
        if isinstance(node, ast.ClassDef):
            _collect_class(node, builder, markers, display_path)
        elif isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
            raw = _parse_export(node, None, markers, display_path)
            if raw is not None:
                builder.add_export(raw)


def _collect_class(
    node: ast.ClassDef, builder: SchemaBuilder, markers: MarkerConfig, source_file: str
) -> None:
    """Collect a class as a struct (if marked) and its exported methods."""
    decorators = [_decorator_name(d) for d in node.decorator_list]
    if any(_matches(name, markers.struct) for name in decorators):
        builder.add_struct(_parse_struct(node, source_file))

    for item in node.body:
        if isinstance(item, ast.FunctionDef | ast.AsyncFunctionDef):
            raw = _parse_export(item, node.name, markers, source_file)
            if raw is not None:
                builder.add_export(raw)


def _parse_struct(node: ast.ClassDef, source_file: str) -> RawStruct:
    struct = RawStruct(name=node.name, location=f"{source_file}:{_first_line(node)}")
    for item in node.body:
        location = f"{source_file}:{item.lineno}"
        if isinstance(item, ast.AnnAssign) and isinstance(item.target, ast.Name):
            struct.fields.append(
                RawField(
                    name=item.target.id,
                    annotation=_annotation_text(item.annotation),
                    location=location,
                )
            )
        elif isinstance(item, ast.Assign):
            for target in item.targets:
                if isinstance(target, ast.Name) and not _is_dunder(target.id):
                    struct.fields.append(RawField(name=target.id, annotation=None, location=location))
    return struct


def _parse_export(
    node: ast.FunctionDef | ast.AsyncFunctionDef,
    owner: str | None,
    markers: MarkerConfig,
    source_file: str,
) -> RawExport | None:
    """Build a raw export if the function carries an export marker."""
    decorators = [_decorator_name(d) for d in node.decorator_list]
    found = set()
    if any(_matches(name, markers.sync_export) for name in decorators):
        found.add("sync")
    if any(_matches(name, markers.async_export) for name in decorators):
        found.add("async")
    if not found:
        return None

    is_static = "staticmethod" in decorators
    args = node.args
    positional = [*args.posonlyargs, *args.args]
    if owner and not is_static and positional:
        positional = positional[1:]  # self / cls

    params = [
        RawParam(name=a.arg, annotation=_annotation_text(a.annotation) if a.annotation else None)
        for a in [*positional, *args.kwonlyargs]
    ]
    for extra in (args.vararg, args.kwarg):
        if extra is not None:
            params.append(RawParam(name=extra.arg))

    return RawExport(
        method_name=node.name,
        owner=owner,
        is_static=is_static,
        markers=found,
        params=params,
        return_annotation=_annotation_text(node.returns) if node.returns else None,
        location=f"{source_file}:{_first_line(node)}",
    )


def _first_line(node: ast.ClassDef | ast.FunctionDef | ast.AsyncFunctionDef) -> int:
    """Line of the first decorator, where the marker is written."""
    if node.decorator_list:
        return node.decorator_list[0].lineno
    return node.lineno


def _decorator_name(node: ast.expr) -> str:
    """Dotted decorator name with any call arguments stripped."""
    if isinstance(node, ast.Call):
        node = node.func
    return ast.unparse(node)


def _matches(name: str, candidates: list[str]) -> bool:
    return any(name == marker or name.endswith("." + marker) for marker in candidates)


def _annotation_text(node: ast.expr) -> str:
    # String annotations ("f64[]", forward references) carry their text verbatim
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return ast.unparse(node)


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _display_path(file_path: Path, repo_root: str | Path) -> str:
    if repo_root:
        resolved, root = file_path.resolve(), Path(repo_root).resolve()
        if resolved.is_relative_to(root):
            return str(resolved.relative_to(root))
    return str(file_path)
