from __future__ import annotations


class WastGenError(RuntimeError):
    pass


class ManifestError(WastGenError):
    pass


class UnrecognizedKindError(ManifestError):
    pass


class FragmentError(WastGenError):
    pass
