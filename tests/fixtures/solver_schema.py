"""Example schema used across the test suite."""

from bridgegen.markers import export, export_async, f64, native_struct


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


class Solver:
    @staticmethod
    @export
    def process(input: Input) -> Result: ...

    @staticmethod
    @export_async
    def process_async(input: Input) -> Result: ...
