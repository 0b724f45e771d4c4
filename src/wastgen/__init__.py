"""
wastgen: generate the WebAssembly glue between a 256-bit EVM operand stack and
the host interface.

Design goals:
- Deterministic output (stable ordering, no timestamps)
- Data-driven via spec/interface_manifest.json
- Python stdlib only
"""

from .context import DEFAULT_CONTEXT, MachineContext
from .emitter import Artifact, compile_function, generate_documents, load_fragments, write_documents
from .errors import FragmentError, ManifestError, UnrecognizedKindError, WastGenError
from .manifest import InterfaceDescriptor, Manifest, ParamKind, ReturnKind, load_manifest
from .signature import Mode

__version__ = "0.1.0"
