from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .context import DEFAULT_CONTEXT
from .emitter import check_documents, generate_documents, load_fragments, write_documents
from .errors import WastGenError
from .manifest import default_manifest_path, load_manifest
from .signature import Mode


def _default_root() -> Path:
    checkout = Path(__file__).resolve().parents[2]
    if (checkout / "wasm").is_dir():
        return checkout
    return Path.cwd()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="wastgen",
        description="Generate the sync and async EVM host-interface glue (wast.json, wast-async.json).",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Repository root (defaults to the checkout containing this package, else the current directory).",
    )
    parser.add_argument("--manifest", default="", help="Interface manifest JSON (defaults to the bundled manifest).")
    parser.add_argument("--fragment-dir", default="", help="Directory of hand-written *.wast fragments (defaults to <root>/wasm).")
    parser.add_argument("--out-dir", default="", help="Output directory (defaults to <root>/wasm).")
    parser.add_argument("--host-module", default=None, help="Import module name (overrides the manifest).")
    parser.add_argument("--check", action="store_true", help="Verify the outputs are up to date instead of writing them.")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(list(argv) if argv is not None else None)

    root = Path(args.root).resolve() if args.root else _default_root()
    manifest_path = Path(args.manifest) if args.manifest else default_manifest_path()
    fragment_dir = Path(args.fragment_dir) if args.fragment_dir else root / "wasm"
    out_dir = Path(args.out_dir) if args.out_dir else root / "wasm"

    try:
        manifest = load_manifest(manifest_path)
        fragments = load_fragments(fragment_dir)
        docs = generate_documents(manifest, fragments, DEFAULT_CONTEXT, host_module=args.host_module)

        if args.verbose:
            print(
                f"wastgen: {len(manifest)} generated entries, {len(fragments)} fragments, "
                f"{len(docs[Mode.SYNC])} entries per document",
                file=sys.stderr,
            )

        if args.check:
            problems = check_documents(docs, out_dir)
            for problem in problems:
                print(f"wastgen: {problem}", file=sys.stderr)
            return 1 if problems else 0

        for path in write_documents(docs, out_dir):
            if args.verbose:
                print(f"wastgen: wrote {path}", file=sys.stderr)
        return 0
    except WastGenError as e:
        print(f"wastgen: ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
