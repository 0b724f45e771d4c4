import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from wastgen.context import DEFAULT_CONTEXT  # noqa: E402
from wastgen.ir import render  # noqa: E402
from wastgen.manifest import (  # noqa: E402
    InterfaceDescriptor,
    ParamKind,
    ReturnKind,
    default_manifest_path,
    load_manifest,
)
from wastgen.signature import Mode, compile_import, import_params, import_result  # noqa: E402


class TestSignature(unittest.TestCase):
    def test_async_adds_exactly_one_trailing_handle(self):
        for opcode, desc in load_manifest(default_manifest_path()):
            sync = import_params(desc, Mode.SYNC)
            async_ = import_params(desc, Mode.ASYNC)
            if desc.is_async:
                self.assertEqual(async_, sync + ("i32",), opcode)
            else:
                self.assertEqual(async_, sync, opcode)

    def test_address_in_i32_out(self):
        desc = InterfaceDescriptor(name="X", inputs=(ParamKind.ADDRESS,), outputs=(ReturnKind.I32,))
        self.assertEqual(
            render(compile_import(desc, Mode.SYNC, DEFAULT_CONTEXT)),
            '(import "ethereum" "X" (func $X (param i32) (result i32)))',
        )
        # Only asynchronous descriptors get the continuation handle.
        self.assertEqual(
            render(compile_import(desc, Mode.ASYNC, DEFAULT_CONTEXT)),
            '(import "ethereum" "X" (func $X (param i32) (result i32)))',
        )
        async_desc = InterfaceDescriptor(
            name="X", is_async=True, inputs=(ParamKind.ADDRESS,), outputs=(ReturnKind.I32,)
        )
        self.assertEqual(
            render(compile_import(async_desc, Mode.ASYNC, DEFAULT_CONTEXT)),
            '(import "ethereum" "X" (func $X (param i32 i32) (result i32)))',
        )

    def test_only_i64_inputs_stay_64_bit(self):
        desc = InterfaceDescriptor(
            name="call",
            inputs=(ParamKind.I64, ParamKind.ADDRESS, ParamKind.I128, ParamKind.READ_OFFSET, ParamKind.LENGTH),
            outputs=(ReturnKind.I32,),
        )
        self.assertEqual(import_params(desc, Mode.SYNC), ("i64", "i32", "i32", "i32", "i32"))

    def test_wide_results_take_an_output_handle(self):
        for kind in (ReturnKind.I128, ReturnKind.ADDRESS, ReturnKind.I256):
            desc = InterfaceDescriptor(name="w", inputs=(ParamKind.I32,), outputs=(kind,))
            self.assertEqual(import_params(desc, Mode.SYNC), ("i32", "i32"))
            self.assertIsNone(import_result(desc))

    def test_scalar_results_are_returned(self):
        for kind in (ReturnKind.I32, ReturnKind.I64):
            desc = InterfaceDescriptor(name="s", outputs=(kind,))
            self.assertEqual(import_params(desc, Mode.SYNC), ())
            self.assertEqual(import_result(desc), kind.value)

    def test_no_output(self):
        desc = InterfaceDescriptor(name="noop")
        self.assertEqual(render(compile_import(desc, Mode.SYNC, DEFAULT_CONTEXT)), '(import "ethereum" "noop" (func $noop))')

    def test_balance(self):
        desc = load_manifest(default_manifest_path()).get("BALANCE")
        self.assertEqual(
            render(compile_import(desc, Mode.ASYNC, DEFAULT_CONTEXT)),
            '(import "ethereum" "getBalance" (func $getBalance (param i32 i32 i32)))',
        )

    def test_host_module_from_context(self):
        ctx = DEFAULT_CONTEXT.with_host_module("env")
        desc = InterfaceDescriptor(name="getGasLeft", outputs=(ReturnKind.I64,))
        self.assertEqual(
            render(compile_import(desc, Mode.SYNC, ctx)),
            '(import "env" "getGasLeft" (func $getGasLeft (result i64)))',
        )


if __name__ == "__main__":
    unittest.main()
