"""Tests for the pybind11 bridge renderer, the runtime header and the stub."""

from bridgegen.generators.artifact_emitter import load_runtime_template
from bridgegen.generators.bridge_generator import BridgeGenerator
from bridgegen.generators.stub_generator import StubGenerator
from bridgegen.ir import ExportSchema, FieldSchema, ParameterSchema, SchemaIR, StructSchema


def _ir() -> SchemaIR:
    return SchemaIR(
        structs=[
            StructSchema(name="Input", fields=[FieldSchema(name="value", semantic_type="f64")]),
            StructSchema(name="Result", fields=[FieldSchema(name="doubled", semantic_type="f64")]),
        ],
        exports=[
            ExportSchema(
                name="Solver_process",
                method_name="process",
                owning_class_name="Solver",
                is_static=True,
                param_type="Input",
                return_type="Result",
                parameters=[ParameterSchema(name="input", semantic_type="Input")],
            ),
            ExportSchema(
                name="Solver_process_async",
                method_name="process_async",
                owning_class_name="Solver",
                is_static=True,
                is_async=True,
                param_type="Input",
                return_type="Result",
                parameters=[ParameterSchema(name="input", semantic_type="Input")],
            ),
            ExportSchema(name="reset", method_name="reset"),
            ExportSchema(
                name="square",
                method_name="square",
                param_type="i32",
                return_type="i64",
                parameters=[ParameterSchema(name="n", semantic_type="i32")],
            ),
        ],
    )


# --- Header ---


def test_header_declares_native_functions():
    header = BridgeGenerator(_ir(), "native_bridge").render_header(
        "generated_structs.hpp", "bridge_runtime.hpp"
    )
    assert '#include "bridge_runtime.hpp"' in header
    assert '#include "generated_structs.hpp"' in header
    assert "Result Solver_process(const Input& input);" in header
    assert "Result Solver_process_async(const Input& input);" in header
    assert "void reset();" in header
    assert "int64_t square(const int32_t& n);" in header


def test_header_declares_worker_only_for_async_exports():
    header = BridgeGenerator(_ir(), "native_bridge").render_header("s.hpp", "r.hpp")
    assert "class Solver_process_async_AsyncWorker : public bridge::AsyncWorker {" in header
    assert "Solver_process_AsyncWorker" not in header
    # The worker owns a copy of its input
    assert "explicit Solver_process_async_AsyncWorker(Input input) : input_(std::move(input)) {}" in header
    assert "    Input input_;" in header
    assert "    Result result_{};" in header


def test_reserved_parameter_name_sanitized():
    ir = SchemaIR(
        exports=[
            ExportSchema(
                name="f",
                method_name="f",
                param_type="f64",
                parameters=[ParameterSchema(name="default", semantic_type="f64")],
            )
        ]
    )
    header = BridgeGenerator(ir, "m").render_header("s.hpp", "r.hpp")
    assert "void f(const double& default_);" in header


# --- Source ---


def test_sync_wrapper_shape():
    source = BridgeGenerator(_ir(), "native_bridge").render_source("generated_api.hpp")
    assert "py::object Solver_process_wrapper(py::args args) {" in source
    assert "if (args.size() < 1 || !py::isinstance<py::dict>(args[0])) {" in source
    assert 'throw py::type_error("Solver_process: argument 0 must be a dict");' in source
    assert "Input input = Input::FromBoundaryValue(args[0].cast<py::dict>());" in source
    assert "py::gil_scoped_release release;" in source
    assert "result = Solver_process(input);" in source
    assert "return result.ToBoundaryValue();" in source


def test_wrappers_convert_native_errors():
    source = BridgeGenerator(_ir(), "native_bridge").render_source("generated_api.hpp")
    assert source.count("catch (const py::error_already_set&) {") == 4
    assert 'throw bridge::BridgeError(std::string("Solver_process: ") + e.what());' in source
    assert 'throw bridge::BridgeError(std::string("reset: ") + e.what());' in source


def test_argument_check_precedes_try_block():
    source = BridgeGenerator(_ir(), "native_bridge").render_source("generated_api.hpp")
    wrapper = source[source.index("py::object Solver_process_wrapper"):]
    assert wrapper.index("py::type_error") < wrapper.index("try {")


def test_async_wrapper_queues_worker_with_input_copy():
    source = BridgeGenerator(_ir(), "native_bridge").render_source("generated_api.hpp")
    assert (
        "auto worker = std::make_unique<Solver_process_async_AsyncWorker>(std::move(input));"
        in source
    )
    assert "return bridge::AsyncWorker::Queue(std::move(worker));" in source
    assert "void Solver_process_async_AsyncWorker::Execute() {" in source
    assert "result_ = Solver_process_async(input_);" in source
    assert "py::object Solver_process_async_AsyncWorker::OnOK() {" in source
    assert "return result_.ToBoundaryValue();" in source


def test_scalar_and_void_exports():
    source = BridgeGenerator(_ir(), "native_bridge").render_source("generated_api.hpp")
    assert "int32_t input = static_cast<int32_t>(args[0].cast<double>());" in source
    assert "return py::float_(static_cast<double>(result));" in source
    assert "reset();" in source
    assert "return py::none();" in source


def test_module_registration():
    source = BridgeGenerator(_ir(), "native_bridge").render_source("generated_api.hpp")
    assert "PYBIND11_MODULE(native_bridge, m) {" in source
    assert "bridge::RegisterErrorType(m);" in source
    for name in ("Solver_process", "Solver_process_async", "reset", "square"):
        assert f'm.def("{name}", &{name}_wrapper);' in source


def test_gil_kept_when_values_are_dynamic():
    ir = SchemaIR(
        structs=[StructSchema(name="Loose", fields=[FieldSchema(name="w", semantic_type="Widget")])],
        exports=[
            ExportSchema(
                name="touch",
                method_name="touch",
                param_type="Loose",
                parameters=[ParameterSchema(name="value", semantic_type="Loose")],
            )
        ],
    )
    source = BridgeGenerator(ir, "m").render_source("api.hpp")
    assert "touch(input);" in source
    assert "gil_scoped_release" not in source


# --- Runtime header ---


def test_runtime_header_settles_future_on_loop_thread():
    runtime = load_runtime_template()
    assert "class BridgeError : public std::runtime_error" in runtime
    assert 'py::register_exception<BridgeError>(m, "BridgeError")' in runtime
    assert "class WorkerPool" in runtime
    assert "class AsyncWorker" in runtime
    # The future is created before the work is scheduled
    assert runtime.index('attr("create_future")') < runtime.index("WorkerPool::Instance().Submit(")
    assert 'attr("call_soon_threadsafe")' in runtime
    assert "settled_" in runtime
    assert 'attr("set_result")' in runtime
    assert 'attr("set_exception")' in runtime


def test_runtime_header_drains_workers_before_shutdown():
    runtime = load_runtime_template()
    assert 'py::module_::import("atexit").attr("register")' in runtime
    assert "WorkerPool::Instance().Drain();" in runtime
    # Registered on first use, before any work is submitted
    queue = runtime[runtime.index("static py::object Queue("):]
    assert queue.index("RegisterShutdownDrain()") < queue.index("WorkerPool::Instance().Submit(")
    assert 'attr("is_closed")' in runtime


# --- Stub ---


def test_stub_defines_every_declaration():
    ir = _ir()
    bridge = BridgeGenerator(ir, "native_bridge")
    stub = StubGenerator(ir, bridge).render("generated_api.hpp")
    assert '#include "generated_api.hpp"' in stub
    assert "Result Solver_process(const Input& input) {" in stub
    assert "void reset() {" in stub
    assert "int64_t square(const int32_t& n) {" in stub
    assert stub.count("return {};") == 3
