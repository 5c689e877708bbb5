"""Tests for type mapping and identifier sanitizing."""

from bridgegen.mapping import NameSanitizer, SemanticType, TypeMapper
from bridgegen.mapping.sanitizer import CPP_RESERVED
from bridgegen.mapping.type_mapper import leaf_type


# --- TypeMapper ---


def test_every_semantic_type_has_every_table_entry():
    for kind in SemanticType:
        assert kind.value in TypeMapper.STORAGE_TYPES
        assert kind.value in TypeMapper.EXTRACTORS
        assert kind.value in TypeMapper.BOUNDARY_CONSTRUCTORS
        assert kind.value in TypeMapper.DISPLAY_TYPES


def test_precise_numerics_store_at_exact_width():
    assert TypeMapper.resolve_storage_type("i8").value == "int8_t"
    assert TypeMapper.resolve_storage_type("u16").value == "uint16_t"
    assert TypeMapper.resolve_storage_type("i32").value == "int32_t"
    assert TypeMapper.resolve_storage_type("u64").value == "uint64_t"
    assert TypeMapper.resolve_storage_type("f32").value == "float"
    assert TypeMapper.resolve_storage_type("f64").value == "double"


def test_numerics_share_the_generic_extractor():
    assert TypeMapper.resolve_extractor("i32").value == ".cast<double>()"
    assert TypeMapper.resolve_extractor("f32").value == ".cast<double>()"
    assert TypeMapper.resolve_extractor("str").value == ".cast<std::string>()"
    assert TypeMapper.resolve_extractor("bool").value == ".cast<bool>()"


def test_display_types():
    assert TypeMapper.resolve_display_type("u8").value == "int"
    assert TypeMapper.resolve_display_type("f64").value == "float"
    assert TypeMapper.resolve_display_type("str").value == "str"


def test_aliases():
    assert TypeMapper.normalize("float") == "f64"
    assert TypeMapper.normalize("int") == "i64"
    assert TypeMapper.normalize("  f32 ") == "f32"


def test_unknown_type_falls_back_unchanged():
    storage = TypeMapper.resolve_storage_type("Widget")
    assert storage.value == "Widget"
    assert storage.fallback is True

    extractor = TypeMapper.resolve_extractor("Widget")
    assert extractor.value == "Widget"
    assert extractor.fallback is True

    assert TypeMapper.cpp_type("Widget") == "py::object"
    assert TypeMapper.py_type("Widget") == "Any"


def test_struct_names_resolve_without_fallback():
    structs = {"Point"}
    assert TypeMapper.resolve_storage_type("Point", structs) == ("Point", False)
    assert TypeMapper.resolve_extractor("Point", structs).value == ".cast<py::dict>()"
    assert TypeMapper.is_known("list[Point]", structs)
    assert not TypeMapper.is_known("list[Point]")


def test_sequence_syntaxes():
    for text in ("f64[]", "list[f64]", "List[f64]", "Sequence[f64]", "typing.List[f64]"):
        assert TypeMapper.sequence_inner(text) == "f64", text
    assert TypeMapper.sequence_inner("f64") is None
    assert TypeMapper.sequence_inner("list[float]") == "f64"


def test_nested_sequences_map_recursively():
    assert TypeMapper.cpp_type("list[list[f64]]") == "std::vector<std::vector<double>>"
    assert TypeMapper.py_type("i32[][]") == "list[list[int]]"
    assert leaf_type("list[list[u8]]") == "u8"


def test_optional_syntaxes():
    assert TypeMapper.optional_inner("f64 | None") == "f64"
    assert TypeMapper.optional_inner("None | str") == "str"
    assert TypeMapper.optional_inner("Optional[list[i32]]") == "list[i32]"
    assert TypeMapper.optional_inner("f64") is None
    assert TypeMapper.optional_inner("f64 | str") is None


def test_void():
    assert TypeMapper.is_void("void")
    assert TypeMapper.is_void("None")
    assert not TypeMapper.is_void("str")


def test_display_defaults():
    assert TypeMapper.display_default("i32") == "0"
    assert TypeMapper.display_default("f64") == "0.0"
    assert TypeMapper.display_default("str") == '""'
    assert TypeMapper.display_default("bool") == "False"
    assert TypeMapper.display_default("list[f64]") == "field(default_factory=list)"
    assert TypeMapper.display_default("Point", {"Point"}) == "field(default_factory=Point)"
    assert TypeMapper.display_default("Widget") == "None"


# --- NameSanitizer ---


def test_reserved_words_detected():
    sanitizer = NameSanitizer()
    for word in ("class", "default", "new", "delete", "namespace", "and_eq", "co_await"):
        assert sanitizer.is_reserved(word), word


def test_reserved_check_is_case_sensitive():
    sanitizer = NameSanitizer()
    assert not sanitizer.is_reserved("Class")
    assert not sanitizer.is_reserved("value")


def test_sanitize_appends_suffix_only_when_reserved():
    sanitizer = NameSanitizer()
    assert sanitizer.sanitize("class") == "class_"
    assert sanitizer.sanitize("name") == "name"


def test_sanitized_names_never_reserved():
    sanitizer = NameSanitizer()
    for word in CPP_RESERVED:
        assert not sanitizer.is_reserved(sanitizer.sanitize(word))


def test_unique_names_avoid_existing_renames():
    sanitizer = NameSanitizer()
    names = sanitizer.unique_names(["new", "new_", "value"])
    assert names == {"new": "new__", "new_": "new_", "value": "value"}
    assert len(set(names.values())) == 3


def test_unique_names_respect_taken_names():
    sanitizer = NameSanitizer()
    assert sanitizer.unique_names(["x", "class"], taken=["x", "class_"]) == {
        "x": "x_",
        "class": "class__",
    }


def test_struct_members_avoid_marshal_functions_and_types():
    sanitizer = NameSanitizer()
    members = sanitizer.struct_members(["ToBoundaryValue", "Inner", "default", "ok"], {"Inner"})
    assert members == {
        "ToBoundaryValue": "ToBoundaryValue_",
        "Inner": "Inner_",
        "default": "default_",
        "ok": "ok",
    }
