"""Identifier sanitizing for names that collide with C++ reserved words."""

from __future__ import annotations

from collections.abc import Collection

# C++17 keywords and alternative operator tokens
CPP_RESERVED = frozenset({
    "alignas", "alignof", "and", "and_eq", "asm", "auto", "bitand", "bitor",
    "bool", "break", "case", "catch", "char", "char8_t", "char16_t", "char32_t",
    "class", "compl", "concept", "const", "const_cast", "consteval", "constexpr",
    "constinit", "continue", "co_await", "co_return", "co_yield", "decltype",
    "default", "delete", "do", "double", "dynamic_cast", "else", "enum",
    "explicit", "export", "extern", "false", "float", "for", "friend", "goto",
    "if", "inline", "int", "long", "mutable", "namespace", "new", "noexcept",
    "not", "not_eq", "nullptr", "operator", "or", "or_eq", "private",
    "protected", "public", "register", "reinterpret_cast", "requires",
    "restrict", "return", "short", "signed", "sizeof", "static",
    "static_assert", "static_cast", "struct", "switch", "template", "this",
    "thread_local", "throw", "true", "try", "typedef", "typeid", "typename",
    "union", "unsigned", "using", "virtual", "void", "volatile", "wchar_t",
    "while", "xor", "xor_eq",
})

RENAME_SUFFIX = "_"

# Member functions every generated struct declares
MARSHAL_FUNCTIONS = ("FromBoundaryValue", "ToBoundaryValue")


class NameSanitizer:
    """Detects reserved identifiers and produces collision-free renames."""

    def __init__(self, reserved: frozenset[str] = CPP_RESERVED):
        self.reserved = reserved

    def is_reserved(self, identifier: str) -> bool:
        return identifier in self.reserved

    def sanitize(self, identifier: str) -> str:
        """Return ``identifier`` with a trailing underscore if it is reserved."""
        if self.is_reserved(identifier):
            return identifier + RENAME_SUFFIX
        return identifier

    def unique_names(self, identifiers: list[str], taken: Collection[str] = ()) -> dict[str, str]:
        """Map each identifier to a C++ name that is not reserved and not taken.

        Identifiers that are usable as-is keep their name; the others get
        suffixes until they collide with nothing, so ``new`` next to ``new_``
        becomes ``new__``.
        """
        used = set(taken)
        names = {}
        for identifier in identifiers:
            if not self.is_reserved(identifier) and identifier not in used:
                names[identifier] = identifier
        used.update(names)
        for identifier in identifiers:
            if identifier in names:
                continue
            candidate = identifier + RENAME_SUFFIX
            while candidate in used or self.is_reserved(candidate):
                candidate += RENAME_SUFFIX
            names[identifier] = candidate
            used.add(candidate)
        return {identifier: names[identifier] for identifier in identifiers}

    def struct_members(
        self, field_names: list[str], struct_names: Collection[str] = ()
    ) -> dict[str, str]:
        """C++ member names for the fields of one generated struct.

        Members must not shadow the marshal functions or any struct type.
        """
        return self.unique_names(field_names, taken=[*MARSHAL_FUNCTIONS, *struct_names])
