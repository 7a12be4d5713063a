"""
Reconcile configuration — what gets built, kept, and rewritten.

Loaded from reconcile.yml (or built from defaults), this is the only
source of paths and file names. Nothing downstream looks at the
process working directory.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path, PurePath

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_NEXT_STEPS = [
    "npm run example",
    "npm run example:advanced",
    "npm run test",
    "npm run test:unit",
    "npm run test:integration",
    "npm run test:performance",
    "npm run test:edge-cases",
]


class StaleBackupPolicy(str, Enum):
    """What preserve does when a backup slot survived an earlier run."""

    REFUSE = "refuse"
    REUSE = "reuse"
    OVERWRITE = "overwrite"


class BackendConfig(BaseModel):
    """How to invoke the compiler backend."""

    executable: str = "wasm-pack"
    target: str = "nodejs"
    features: list[str] = Field(default_factory=lambda: ["wasm"])
    extra_args: list[str] = Field(default_factory=list)
    timeout: int = Field(default=1800, gt=0)

    def argv(self, out_dir: Path | str) -> list[str]:
        """Full command line for one build into ``out_dir``."""
        cmd = [
            self.executable,
            "build",
            "--target",
            self.target,
            "--out-dir",
            str(out_dir),
        ]
        if self.features:
            cmd.extend(["--features", ",".join(self.features)])
        cmd.extend(self.extra_args)
        return cmd


def _check_plain_name(name: str) -> str:
    if not name or name in (".", ".."):
        raise ValueError(f"invalid file name: {name!r}")
    if "/" in name or "\\" in name:
        raise ValueError(f"file name must not contain a path separator: {name!r}")
    return name


class ReconcileConfig(BaseModel):
    """Root configuration for one output directory."""

    output_dir: str = "pkg"
    managed_files: list[str] = Field(
        default_factory=lambda: ["package.json", "README.md"]
    )
    generated_files: dict[str, str] = Field(
        default_factory=lambda: {".gitignore": "pkarr*\n"}
    )
    backup_suffix: str = ".backup"
    stale_backups: StaleBackupPolicy = StaleBackupPolicy.REFUSE
    audit: bool = True
    backend: BackendConfig = Field(default_factory=BackendConfig)
    next_steps: list[str] = Field(default_factory=lambda: list(DEFAULT_NEXT_STEPS))

    @field_validator("managed_files")
    @classmethod
    def _managed_names(cls, names: list[str]) -> list[str]:
        for name in names:
            _check_plain_name(name)
        if len(set(names)) != len(names):
            raise ValueError("managed_files contains duplicates")
        return names

    @field_validator("generated_files")
    @classmethod
    def _generated_names(cls, files: dict[str, str]) -> dict[str, str]:
        for name in files:
            _check_plain_name(name)
        return files

    @field_validator("output_dir")
    @classmethod
    def _output_dir(cls, value: str) -> str:
        if not value:
            raise ValueError("output_dir must not be empty")
        parts = PurePath(os.path.normpath(value)).parts
        if not PurePath(value).is_absolute() and all(p in (".", "..") for p in parts):
            raise ValueError(f"output_dir must not be the project root or above it: {value!r}")
        return value

    @field_validator("backup_suffix")
    @classmethod
    def _suffix(cls, suffix: str) -> str:
        if not suffix or "/" in suffix or "\\" in suffix:
            raise ValueError(f"invalid backup suffix: {suffix!r}")
        return suffix

    @model_validator(mode="after")
    def _disjoint(self) -> ReconcileConfig:
        overlap = set(self.managed_files) & set(self.generated_files)
        if overlap:
            raise ValueError(
                "files cannot be both managed and generated: "
                + ", ".join(sorted(overlap))
            )
        return self

    def output_path(self, project_root: Path) -> Path:
        """Absolute output directory for a project root.

        Raises:
            ValueError: If it resolves to the project root or one of its
                parents.
        """
        root = project_root.resolve()
        out = Path(self.output_dir)
        if not out.is_absolute():
            out = root / out
        out = out.resolve()
        if out == root or out in root.parents:
            raise ValueError(
                f"output_dir {self.output_dir!r} resolves to {out}, which contains the project"
            )
        return out
