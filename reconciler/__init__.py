"""WASM package reconciler — rebuild a wasm-pack output directory without losing hand-written files."""

__version__ = "0.1.0"
