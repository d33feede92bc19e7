from __future__ import annotations

import json
import runpy
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_CANDIDATES = [
    "wfdl.config.js",
    "wfdl.config.mjs",
    "wfdl.config.cjs",
    "wfdl.config.json",
]
JS_SUFFIXES = {".js", ".mjs", ".cjs"}

# Imports the config module and prints its default export as JSON
NODE_LOADER = """
const { pathToFileURL } = require("url");
import(pathToFileURL(process.argv[1]).href).then((mod) => {
  const cfg = mod.default ?? mod;
  process.stdout.write(JSON.stringify(cfg));
}).catch((err) => {
  console.error(err && err.message ? err.message : String(err));
  process.exit(1);
});
"""


class ConfigError(Exception):
    pass


class WfdlConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    fonts: Optional[List[str]] = None
    out_dir: Optional[str] = Field(default=None, alias="outDir")
    verbose: Optional[bool] = None
    subsets_allowed: Optional[List[str]] = Field(default=None, alias="subsetsAllowed")
    minify_css: Optional[bool] = Field(default=None, alias="minifyCss")

    # Only a real boolean counts as set; anything else means "let the engine decide"
    @field_validator("minify_css", mode="before")
    @classmethod
    def _only_real_bool(cls, v):
        return v if isinstance(v, bool) else None


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise ConfigError(f"{path} is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def _load_py(path: Path) -> Any:
    try:
        ns = runpy.run_path(str(path))
    except Exception as e:
        raise ConfigError(f"Failed to execute {path}: {e}") from e
    if "config" in ns:
        return ns["config"]
    if "default" in ns:
        return ns["default"]
    raise ConfigError(f"{path} does not define `config`")


def _load_js(path: Path) -> Any:
    node = shutil.which("node")
    if node is None:
        raise ConfigError(f"Cannot load {path}: `node` was not found on PATH")
    proc = subprocess.run(
        [node, "-e", NODE_LOADER, str(path)],
        capture_output=True,
    )
    if proc.returncode != 0:
        detail = proc.stderr.decode("utf-8", errors="replace").strip() or f"node exited with {proc.returncode}"
        raise ConfigError(f"Failed to load {path}: {detail}")
    try:
        return json.loads(proc.stdout.decode("utf-8") or "null")
    except UnicodeDecodeError as e:
        raise ConfigError(f"{path} produced output that is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path} did not export a JSON-serialisable config: {e}") from e


def load_one_config_file(file_path: Union[str, Path], silent: bool = False) -> Optional[WfdlConfig]:
    """Load a single config file.

    Returns None when the file does not exist (printing a warning unless
    *silent*). A file that exists but cannot be parsed, executed or
    validated raises ConfigError.
    """
    path = Path(file_path)
    if not path.exists():
        if not silent:
            print(f"[wfdl] Config file not found: {path}", file=sys.stderr)
        return None

    suffix = path.suffix.lower()
    if suffix == ".json":
        raw = _load_json(path)
    elif suffix == ".py":
        raw = _load_py(path)
    elif suffix in JS_SUFFIXES:
        raw = _load_js(path)
    else:
        raise ConfigError(f"Unsupported config file type: {path}")

    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{path} must export an object, got {type(raw).__name__}")
    try:
        return WfdlConfig.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e


def load_config(explicit_path: Optional[str] = None, cwd: Optional[Path] = None) -> WfdlConfig:
    """Load config in this order:
    1. explicit path (if given), relative paths resolved against cwd
    2. wfdl.config.js/mjs/cjs/json in cwd
    Falls back to an empty config.
    """
    base = Path(cwd) if cwd is not None else Path.cwd()

    if explicit_path:
        p = Path(explicit_path)
        abs_path = p if p.is_absolute() else (base / p).resolve()
        cfg = load_one_config_file(abs_path)
        return cfg if cfg is not None else WfdlConfig()

    for name in CONFIG_CANDIDATES:
        cfg = load_one_config_file(base / name, silent=True)
        if cfg is not None:
            return cfg

    return WfdlConfig()
