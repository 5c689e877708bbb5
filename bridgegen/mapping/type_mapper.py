"""Type mapping from schema semantic types to C++, pybind11 and Python types.

Every table here is keyed by the closed set of semantic types. Struct names
are the only open part of the type vocabulary; callers pass the known struct
names so they resolve without a fallback.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from enum import Enum
from typing import NamedTuple


class SemanticType(str, Enum):
    """Scalar kinds that can cross the language boundary."""

    TEXT = "str"
    BOOLEAN = "bool"
    I8 = "i8"
    U8 = "u8"
    I16 = "i16"
    U16 = "u16"
    I32 = "i32"
    U32 = "u32"
    I64 = "i64"
    U64 = "u64"
    F32 = "f32"
    F64 = "f64"


class Resolution(NamedTuple):
    """Result of a table lookup. ``fallback`` is set when the type was unknown."""

    value: str
    fallback: bool = False


VOID = "void"
DYNAMIC_STORAGE = "py::object"
DYNAMIC_DISPLAY = "Any"

_SEQUENCE_PATTERNS = (
    re.compile(r"^(?:typing\.)?(?:list|List|Sequence)\[(.+)\]$"),
    re.compile(r"^(?:collections\.abc\.)Sequence\[(.+)\]$"),
)
_OPTIONAL_PATTERN = re.compile(r"^(?:typing\.)?Optional\[(.+)\]$")


class TypeMapper:
    """Maps semantic types to storage, extraction and display types"""

    # Spellings accepted in schema source for the canonical semantic types
    ALIASES = {
        "float": "f64",
        "int": "i64",
        "typing.Any": "Any",
    }

    # C++ storage types
    STORAGE_TYPES = {
        "str": "std::string",
        "bool": "bool",
        "i8": "int8_t",
        "u8": "uint8_t",
        "i16": "int16_t",
        "u16": "uint16_t",
        "i32": "int32_t",
        "u32": "uint32_t",
        "i64": "int64_t",
        "u64": "uint64_t",
        "f32": "float",
        "f64": "double",
    }

    # pybind11 extraction suffixes; the boundary value model has one numeric kind
    EXTRACTORS = {
        "str": ".cast<std::string>()",
        "bool": ".cast<bool>()",
        **{kind: ".cast<double>()" for kind in (
            "i8", "u8", "i16", "u16", "i32", "u32", "i64", "u64", "f32", "f64"
        )},
    }

    # pybind11 constructors for writing a scalar back into a Python object
    BOUNDARY_CONSTRUCTORS = {
        "str": "py::str",
        "bool": "py::bool_",
        **{kind: "py::float_" for kind in (
            "i8", "u8", "i16", "u16", "i32", "u32", "i64", "u64", "f32", "f64"
        )},
    }

    # Python facade types
    DISPLAY_TYPES = {
        "str": "str",
        "bool": "bool",
        "i8": "int",
        "u8": "int",
        "i16": "int",
        "u16": "int",
        "i32": "int",
        "u32": "int",
        "i64": "int",
        "u64": "int",
        "f32": "float",
        "f64": "float",
    }

    DISPLAY_DEFAULTS = {
        "str": '""',
        "bool": "False",
        "int": "0",
        "float": "0.0",
    }

    PRECISE_NUMERIC = frozenset(
        {"i8", "u8", "i16", "u16", "i32", "u32", "i64", "u64", "f32", "f64"}
    )

    SEQUENCE_EXTRACTOR = ".cast<py::sequence>()"
    STRUCT_EXTRACTOR = ".cast<py::dict>()"

    # --- Type text helpers ---

    @classmethod
    def normalize(cls, type_text: str) -> str:
        """Collapse whitespace and apply spelling aliases."""
        text = re.sub(r"\s+", " ", type_text.strip())
        text = re.sub(r"\s*([\[\],|])\s*", r"\1", text).replace("|", " | ")
        return cls.ALIASES.get(text, text)

    @classmethod
    def sequence_inner(cls, type_text: str) -> str | None:
        """Element type of ``T[]``, ``list[T]`` or ``Sequence[T]``."""
        text = cls.normalize(type_text)
        if text.endswith("[]"):
            return cls.normalize(text[:-2])
        for pattern in _SEQUENCE_PATTERNS:
            if m := pattern.match(text):
                return cls.normalize(m.group(1))
        return None

    @classmethod
    def optional_inner(cls, type_text: str) -> str | None:
        """Wrapped type of ``T | None``, ``None | T`` or ``Optional[T]``."""
        text = cls.normalize(type_text)
        if m := _OPTIONAL_PATTERN.match(text):
            return cls.normalize(m.group(1))
        parts = _split_union(text)
        if len(parts) == 2 and "None" in parts:
            other = parts[0] if parts[1] == "None" else parts[1]
            return cls.normalize(other)
        return None

    @classmethod
    def is_sequence(cls, type_text: str) -> bool:
        return cls.sequence_inner(type_text) is not None

    @classmethod
    def is_scalar(cls, type_text: str) -> bool:
        return cls.normalize(type_text) in cls.STORAGE_TYPES

    @classmethod
    def is_precise_numeric(cls, type_text: str) -> bool:
        return cls.normalize(type_text) in cls.PRECISE_NUMERIC

    @classmethod
    def is_void(cls, type_text: str) -> bool:
        return cls.normalize(type_text) in (VOID, "None")

    @classmethod
    def is_known(cls, type_text: str, structs: Collection[str] = ()) -> bool:
        """Whether every leaf of the type resolves without a fallback."""
        return not cls.resolve_storage_type(type_text, structs).fallback

    # --- Contract lookups ---

    @classmethod
    def resolve_storage_type(cls, type_text: str, structs: Collection[str] = ()) -> Resolution:
        """C++ storage type. Unknown leaves are returned unchanged."""
        return cls._map(type_text, structs, cls.STORAGE_TYPES, "std::vector<{}>", unknown=None)

    @classmethod
    def resolve_extractor(cls, type_text: str, structs: Collection[str] = ()) -> Resolution:
        """pybind11 suffix that turns a ``py::handle`` into the value to store."""
        text = cls.normalize(type_text)
        if cls.is_sequence(text):
            return Resolution(cls.SEQUENCE_EXTRACTOR)
        if text in cls.EXTRACTORS:
            return Resolution(cls.EXTRACTORS[text])
        if text in structs:
            return Resolution(cls.STRUCT_EXTRACTOR)
        return Resolution(type_text, fallback=True)

    @classmethod
    def resolve_display_type(cls, type_text: str, structs: Collection[str] = ()) -> Resolution:
        """Python facade type. Unknown leaves are returned unchanged."""
        return cls._map(type_text, structs, cls.DISPLAY_TYPES, "list[{}]", unknown=None)

    # --- Emission conveniences (unknown leaves degrade to dynamic) ---

    @classmethod
    def cpp_type(cls, type_text: str, structs: Collection[str] = ()) -> str:
        return cls._map(
            type_text, structs, cls.STORAGE_TYPES, "std::vector<{}>", unknown=DYNAMIC_STORAGE
        ).value

    @classmethod
    def py_type(cls, type_text: str, structs: Collection[str] = ()) -> str:
        return cls._map(
            type_text, structs, cls.DISPLAY_TYPES, "list[{}]", unknown=DYNAMIC_DISPLAY
        ).value

    @classmethod
    def boundary_constructor(cls, type_text: str) -> str | None:
        return cls.BOUNDARY_CONSTRUCTORS.get(cls.normalize(type_text))

    @classmethod
    def default_factory(cls, type_text: str, structs: Collection[str] = ()) -> str | None:
        """Callable building a fresh default, for types that need one."""
        text = cls.normalize(type_text)
        if text in structs:
            return text
        if cls.is_sequence(text):
            return "list"
        return None

    @classmethod
    def display_default(cls, type_text: str, structs: Collection[str] = ()) -> str:
        """Python default-value expression for a non-array, non-optional field."""
        factory = cls.default_factory(type_text, structs)
        if factory is not None:
            return f"field(default_factory={factory})"
        display = cls.DISPLAY_TYPES.get(cls.normalize(type_text))
        return cls.DISPLAY_DEFAULTS.get(display, "None")

    @classmethod
    def _map(
        cls,
        type_text: str,
        structs: Collection[str],
        table: dict[str, str],
        sequence_format: str,
        unknown: str | None,
    ) -> Resolution:
        text = cls.normalize(type_text)
        inner = cls.sequence_inner(text)
        if inner is not None:
            resolved = cls._map(inner, structs, table, sequence_format, unknown)
            return Resolution(sequence_format.format(resolved.value), resolved.fallback)
        if text in table:
            return Resolution(table[text])
        if text in structs:
            return Resolution(text)
        return Resolution(unknown if unknown is not None else type_text, fallback=True)


def _split_union(text: str) -> list[str]:
    """Split ``A | B`` at top-level bars only."""
    parts: list[str] = []
    depth = 0
    current = ""
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == "|" and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    parts.append(current.strip())
    return parts


def leaf_type(type_text: str) -> str:
    """The innermost element type of a (possibly nested) sequence type."""
    inner = TypeMapper.sequence_inner(type_text)
    if inner is None:
        return TypeMapper.normalize(type_text)
    return leaf_type(inner)
