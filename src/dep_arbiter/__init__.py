"""Maven dependency version arbitration for Bazel migrations."""

__version__ = "1.0.0"
