"""
Shared test fixtures and configuration.
"""

import shutil
import sys
import textwrap
from pathlib import Path

import pytest

from reconciler.adapters.base import ExecutionContext
from reconciler.adapters.mock import MockAdapter
from reconciler.adapters.registry import AdapterRegistry
from reconciler.adapters.shell.filesystem import FilesystemAdapter

GENERATED_MANIFEST = '{"name": "pkarr", "version": "0.0.0-generated"}\n'
GENERATED_README = "# pkarr (generated)\n"
GENERATED_GITIGNORE = "*"
WASM_BYTES = b"\x00asm\x01\x00\x00\x00"


def out_dir_from_argv(argv: list[str]) -> Path:
    return Path(argv[argv.index("--out-dir") + 1])


def clobber_output(context: ExecutionContext) -> None:
    """Play wasm-pack: wipe the output directory and regenerate it."""
    out = out_dir_from_argv(context.action.params["argv"])
    if out.exists():
        shutil.rmtree(out)
    out.mkdir(parents=True)
    (out / "package.json").write_text(GENERATED_MANIFEST, encoding="utf-8")
    (out / "README.md").write_text(GENERATED_README, encoding="utf-8")
    (out / ".gitignore").write_text(GENERATED_GITIGNORE, encoding="utf-8")
    (out / "pkarr_bg.wasm").write_bytes(WASM_BYTES)
    (out / "pkarr.js").write_text("module.exports = {};\n", encoding="utf-8")


@pytest.fixture
def backend() -> MockAdapter:
    """Mock wasm-pack that regenerates the output directory from scratch."""
    return MockAdapter(adapter_name="wasm-pack", side_effect=clobber_output)


@pytest.fixture
def registry(backend: MockAdapter) -> AdapterRegistry:
    """Real filesystem adapter plus the mock backend."""
    reg = AdapterRegistry()
    reg.register(FilesystemAdapter())
    reg.register(backend)
    return reg


@pytest.fixture
def crate(tmp_path: Path) -> Path:
    """An empty crate root."""
    root = tmp_path / "crate"
    root.mkdir()
    return root


@pytest.fixture
def fake_wasm_pack(crate: Path) -> Path:
    """A script that behaves like wasm-pack when run as ``python build ...``.

    The backend argv is ``[executable, "build", ...]``; with the Python
    interpreter as executable, Python runs the file named ``build`` in
    the crate root with the remaining arguments.
    """
    script = crate / "build"
    script.write_text(
        textwrap.dedent(
            """\
            import shutil
            import sys
            from pathlib import Path

            args = sys.argv[1:]
            if "--fail" in args:
                sys.stderr.write("error: could not compile `pkarr`\\n")
                sys.exit(101)
            out = Path(args[args.index("--out-dir") + 1])
            if out.exists():
                shutil.rmtree(out)
            out.mkdir(parents=True)
            (out / "package.json").write_text('{"name": "pkarr"}\\n')
            (out / ".gitignore").write_text("*")
            (out / "pkarr_bg.wasm").write_bytes(b"\\x00asm")
            print("[INFO]: :-) Done")
            """
        ),
        encoding="utf-8",
    )
    return script


@pytest.fixture
def python_backend_yml(crate: Path, fake_wasm_pack: Path) -> Path:
    """reconcile.yml that runs the fake wasm-pack through this interpreter."""
    config = crate / "reconcile.yml"
    config.write_text(
        textwrap.dedent(
            f"""\
            output_dir: pkg
            backend:
              executable: {sys.executable!r}
              timeout: 60
            """
        ),
        encoding="utf-8",
    )
    return config
