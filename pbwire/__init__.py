"""Protocol Buffers wire-format primitives: varints, keys, field codecs and maps."""

__version__ = "0.9.0"

__all__ = ["errors", "wire", "scalars", "lengthdelim", "maps"]