"""Schema compiled into a real extension module by the native build tests."""

from bridgegen.markers import (
    export,
    export_async,
    f32,
    f64,
    i8,
    i16,
    i32,
    i64,
    native_struct,
    u8,
    u16,
    u32,
    u64,
)


@native_struct
class Input:
    name: str
    value: f64
    numbers: "f64[]"


@native_struct
class Result:
    greeting: str
    doubled: f64
    squared: list[f64]


@native_struct
class Inner:
    label: str
    flag: bool


@native_struct
class Sample:
    a: i8
    b: u8
    c: i16
    d: u16
    e: i32
    f: u32
    g: i64
    h: u64
    x: f32
    y: f64
    inner: Inner
    items: list[Inner]
    grid: list[list[i32]]
    maybe: f64 | None
    new: i32
    new_: i32


class Solver:
    @staticmethod
    @export
    def process(input: Input) -> Result: ...

    @staticmethod
    @export_async
    def process_async(input: Input) -> Result: ...

    @staticmethod
    @export
    def echo(sample: Sample) -> Sample: ...

    @staticmethod
    @export
    def fail(input: Input) -> Result: ...

    @staticmethod
    @export_async
    def fail_async(input: Input) -> Result: ...


@export_async
def tick() -> None: ...
