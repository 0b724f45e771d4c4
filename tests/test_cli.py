import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from subprocess import PIPE, run


SRC = Path(__file__).resolve().parents[1] / "src"


def _wastgen(*args: str):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join([str(SRC), env.get("PYTHONPATH", "")])
    return run(
        [sys.executable, "-m", "wastgen", *args],
        stdout=PIPE,
        stderr=PIPE,
        encoding="utf-8",
        env=env,
    )


class TestCli(unittest.TestCase):
    def test_generates_both_documents(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "wasm").mkdir()
            (root / "wasm/addmod.wast").write_text("(func $addmod)", encoding="utf-8")

            proc = _wastgen("--root", str(root), "--verbose")
            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            self.assertIn("wrote", proc.stderr)

            sync = json.loads((root / "wasm/wast.json").read_text(encoding="utf-8"))
            async_ = json.loads((root / "wasm/wast-async.json").read_text(encoding="utf-8"))
            self.assertEqual(set(sync), set(async_))
            self.assertEqual(sync["addmod"], {"wast": "(func $addmod)"})
            self.assertIn("(param $callback i32)", async_["CALL"]["wast"])
            self.assertNotIn("$callback", sync["CALL"]["wast"])

            proc = _wastgen("--root", str(root), "--check")
            self.assertEqual(proc.returncode, 0, msg=proc.stderr)

            (root / "wasm/wast-async.json").write_text("{}\n", encoding="utf-8")
            proc = _wastgen("--root", str(root), "--check")
            self.assertEqual(proc.returncode, 1)
            self.assertIn("out of date", proc.stderr)

    def test_missing_fragments_write_nothing(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            out = root / "out"
            proc = _wastgen("--root", str(root), "--fragment-dir", str(root / "missing"), "--out-dir", str(out))
            self.assertEqual(proc.returncode, 2)
            self.assertIn("wastgen: ERROR:", proc.stderr)
            self.assertFalse(out.exists())

    def test_bad_manifest(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "wasm").mkdir()
            manifest = root / "manifest.json"
            manifest.write_text(
                json.dumps({"schema_version": 1, "opcodes": {"X": {"name": "x", "input": ["u256"], "output": []}}}),
                encoding="utf-8",
            )
            proc = _wastgen("--root", str(root), "--manifest", str(manifest))
            self.assertEqual(proc.returncode, 2)
            self.assertIn("unrecognized parameter kind", proc.stderr)
            self.assertFalse((root / "wasm/wast.json").exists())

    def test_host_module_flag(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "wasm").mkdir()
            proc = _wastgen("--root", str(root), "--host-module", "env")
            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            sync = json.loads((root / "wasm/wast.json").read_text(encoding="utf-8"))
            self.assertTrue(sync["GAS"]["imports"].startswith('(import "env" '))


if __name__ == "__main__":
    unittest.main()
