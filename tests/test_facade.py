"""Tests for the generated Python facade, executed against a fake native module."""

import ast
import asyncio
import random
import sys
import threading
import time
import types
from pathlib import Path

import pytest

from bridgegen.generators.facade_generator import FacadeGenerator
from bridgegen.ir import (
    ExportSchema,
    FieldSchema,
    ParameterSchema,
    SchemaIR,
    StructSchema,
    parse_from_source,
)

SOLVER_SCHEMA_PATH = Path(__file__).parent / "fixtures" / "solver_schema.py"


def _solver(payload: dict) -> dict:
    return {
        "greeting": f"Hello, {payload['name']}!",
        "doubled": payload["value"] * 2.0,
        "squared": [float(n * n) for n in payload["numbers"]],
    }


def _fake_native(name: str) -> types.ModuleType:
    """A stand-in for the compiled module with the same calling contract."""
    native = types.ModuleType(name)

    class BridgeError(Exception):
        pass

    native.BridgeError = BridgeError
    native.calls = []
    native.settled = []

    def Solver_process(payload):
        native.calls.append(("Solver_process", payload))
        if not isinstance(payload, dict):
            raise TypeError("Solver_process: argument 0 must be a dict")
        if payload.get("name") == "boom":
            raise BridgeError("Solver_process: boom")
        return _solver(payload)

    def Solver_process_async(payload):
        native.calls.append(("Solver_process_async", payload))
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        work_input = dict(payload)
        delay = random.uniform(0, 0.02)

        def settle(result):
            native.settled.append(work_input["name"])
            future.set_result(result)

        def work():
            time.sleep(delay)
            loop.call_soon_threadsafe(settle, _solver(work_input))

        threading.Thread(target=work).start()
        return future

    native.Solver_process = Solver_process
    native.Solver_process_async = Solver_process_async
    return native


def _load_facade(ir: SchemaIR, module_name: str, native: types.ModuleType | None = None):
    """Render the facade for ``ir`` and execute it as a module."""
    if native is not None:
        sys.modules[module_name] = native
    source = FacadeGenerator(ir, module_name).render()
    facade = types.ModuleType(f"{module_name}_facade")
    sys.modules[facade.__name__] = facade
    exec(compile(source, f"{facade.__name__}.py", "exec"), facade.__dict__)
    return facade


def _solver_facade(module_name: str):
    ir = parse_from_source([SOLVER_SCHEMA_PATH]).ir
    native = _fake_native(module_name)
    return _load_facade(ir, module_name, native), native


# --- Scenario ---


def test_process_forwards_one_boundary_object():
    facade, native = _solver_facade("bridgegen_fake_scenario")

    result = facade.Solver.process(facade.Input(name="Alice", value=7, numbers=[1, 2, 3]))

    assert len(native.calls) == 1
    entry_point, payload = native.calls[0]
    assert entry_point == "Solver_process"
    assert set(payload) == {"name", "value", "numbers"}
    assert payload == {"name": "Alice", "value": 7, "numbers": [1, 2, 3]}
    assert result == facade.Result(greeting="Hello, Alice!", doubled=14.0, squared=[1.0, 4.0, 9.0])


def test_bridge_errors_reach_the_caller():
    facade, native = _solver_facade("bridgegen_fake_errors")
    assert facade.BridgeError is native.BridgeError
    with pytest.raises(facade.BridgeError, match="boom"):
        facade.Solver.process(facade.Input(name="boom"))


def test_async_export_returns_awaitable_result():
    facade, _ = _solver_facade("bridgegen_fake_async")

    async def main():
        return await facade.Solver.process_async(facade.Input(name="Bob", value=2, numbers=[4]))

    result = asyncio.run(main())
    assert result == facade.Result(greeting="Hello, Bob!", doubled=4.0, squared=[16.0])


def test_concurrent_async_exports_each_resolve_once():
    facade, native = _solver_facade("bridgegen_fake_concurrent")
    count = 25

    async def main():
        calls = [
            facade.Solver.process_async(facade.Input(name=f"n{i}", value=i, numbers=[i]))
            for i in range(count)
        ]
        return await asyncio.gather(*calls)

    results = asyncio.run(main())

    assert len(results) == count
    for i, result in enumerate(results):
        assert result.greeting == f"Hello, n{i}!"
        assert result.doubled == 2.0 * i
        assert result.squared == [float(i * i)]
    assert sorted(native.settled) == sorted(f"n{i}" for i in range(count))


# --- Dataclass conversion ---


def _nested_ir() -> SchemaIR:
    return SchemaIR(
        structs=[
            StructSchema(
                name="Outer",
                fields=[
                    FieldSchema(name="inner", semantic_type="Inner"),
                    FieldSchema(name="items", semantic_type="Inner", is_array=True),
                    FieldSchema(name="maybe", semantic_type="f64", is_optional=True),
                    FieldSchema(name="count", semantic_type="i32"),
                    FieldSchema(name="grid", semantic_type="list[i32]", is_array=True),
                    FieldSchema(name="extra", semantic_type="Widget"),
                ],
            ),
            StructSchema(name="Inner", fields=[FieldSchema(name="x", semantic_type="f64")]),
            StructSchema(name="Counter", fields=[FieldSchema(name="n", semantic_type="u32")]),
        ],
        exports=[
            ExportSchema(
                name="Counter_bump",
                method_name="bump",
                owning_class_name="Counter",
                is_static=True,
                param_type="Counter",
                return_type="Counter",
                parameters=[ParameterSchema(name="counter", semantic_type="Counter")],
            ),
            ExportSchema(name="reset", method_name="reset"),
        ],
    )


def _nested_native(name: str) -> types.ModuleType:
    native = types.ModuleType(name)
    native.BridgeError = type("BridgeError", (Exception,), {})
    native.resets = 0

    def Counter_bump(payload):
        return {"n": float(payload["n"] + 1)}

    def reset():
        native.resets += 1

    native.Counter_bump = Counter_bump
    native.reset = reset
    return native


def test_facade_source_is_valid_python():
    source = FacadeGenerator(_nested_ir(), "native_bridge").render()
    ast.parse(source)
    # Contained structs are defined before the structs holding them
    assert source.index("class Inner:") < source.index("class Outer:")


def test_from_boundary_coerces_and_nests():
    facade = _load_facade(_nested_ir(), "bridgegen_fake_nested", _nested_native("bridgegen_fake_nested"))
    outer = facade.Outer.from_boundary(
        {
            "inner": {"x": 1.5},
            "items": [{"x": 2.0}, {"x": 3.0}],
            "maybe": None,
            "count": 4.0,
            "grid": [[1.0, 2.0], [3.0]],
            "extra": {"anything": True},
        }
    )
    assert outer.inner == facade.Inner(x=1.5)
    assert outer.items == [facade.Inner(x=2.0), facade.Inner(x=3.0)]
    assert outer.maybe is None
    assert outer.count == 4 and isinstance(outer.count, int)
    assert outer.grid == [[1, 2], [3]]
    assert all(isinstance(v, int) for row in outer.grid for v in row)
    assert outer.extra == {"anything": True}


def test_from_boundary_leaves_missing_keys_at_defaults():
    facade = _load_facade(_nested_ir(), "bridgegen_fake_partial", _nested_native("bridgegen_fake_partial"))
    outer = facade.Outer.from_boundary({"count": 9.0})
    assert outer.count == 9
    assert outer.inner == facade.Inner()
    assert outer.items == []
    assert outer.maybe is None


def test_to_boundary_emits_every_key():
    facade = _load_facade(_nested_ir(), "bridgegen_fake_to", _nested_native("bridgegen_fake_to"))
    outer = facade.Outer(inner=facade.Inner(x=1.0), items=[facade.Inner(x=2.0)], maybe=0.5, count=3)
    data = outer.to_boundary()
    assert data == {
        "inner": {"x": 1.0},
        "items": [{"x": 2.0}],
        "maybe": 0.5,
        "count": 3,
        "grid": [],
        "extra": None,
    }
    assert facade.Outer.from_boundary(data) == outer


def test_owner_struct_methods_and_free_functions():
    native = _nested_native("bridgegen_fake_owner")
    facade = _load_facade(_nested_ir(), "bridgegen_fake_owner", native)

    assert facade.Counter.bump(facade.Counter(n=1)) == facade.Counter(n=2)
    assert facade.reset() is None
    assert native.resets == 1
    assert "reset" in facade.__all__
    assert "Counter" in facade.__all__


def test_missing_native_module_gives_helpful_import_error():
    sys.modules.pop("bridgegen_not_built", None)
    with pytest.raises(ImportError, match="not built"):
        _load_facade(_nested_ir(), "bridgegen_not_built")


def test_field_names_do_not_shadow_default_factories():
    ir = SchemaIR(
        structs=[
            StructSchema(name="Inner", fields=[FieldSchema(name="x", semantic_type="f64")]),
            StructSchema(
                name="Shadow",
                fields=[
                    FieldSchema(name="field", semantic_type="f64"),
                    FieldSchema(name="_field", semantic_type="f64"),
                    FieldSchema(name="list", semantic_type="f64"),
                    FieldSchema(name="Inner", semantic_type="i32"),
                    FieldSchema(name="items", semantic_type="f64", is_array=True),
                    FieldSchema(name="inner", semantic_type="Inner"),
                ],
            ),
        ]
    )
    facade = _load_facade(ir, "bridgegen_fake_shadow", _nested_native("bridgegen_fake_shadow"))

    first, second = facade.Shadow(), facade.Shadow()
    assert first.field == 0.0
    assert first.list == 0.0
    assert first.Inner == 0
    assert first.items == [] and first.items is not second.items
    assert first.inner == facade.Inner()
    assert facade.Shadow.from_boundary({"field": 2.0, "items": [1.0]}).items == [1.0]
