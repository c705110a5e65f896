from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml
from platformdirs import user_config_dir

from ..remote.models import RemoteServerConfig
from .models import ProcessToolConfig, RuntimeConfig

logger = logging.getLogger(__name__)

APP_NAME = "pygossyp"

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")

T = TypeVar("T")


def _candidate_paths(cwd: Path) -> list[Path]:
    # project-level (higher priority)
    return [
        cwd / ".pygossyp.json",
        cwd / "pygossyp.json",
        cwd / "pygossyp.yaml",
        cwd / "pygossyp.yml",
    ]


def _global_candidate_paths() -> list[Path]:
    cfg_dir = Path(user_config_dir(APP_NAME))
    return [
        cfg_dir / "pygossyp.json",
        cfg_dir / "pygossyp.yaml",
        cfg_dir / "pygossyp.yml",
    ]


def _load_file(p: Path) -> dict[str, Any] | None:
    try:
        text = p.read_text(encoding="utf-8")
        if p.suffix in (".yaml", ".yml"):
            obj = yaml.safe_load(text) or {}
        else:
            obj = json.loads(text)
    except (OSError, ValueError, RecursionError, yaml.YAMLError) as e:
        logger.warning("skipping config %s: %s", p, e)
        return None
    if not isinstance(obj, dict):
        logger.warning("skipping config %s: top level must be a mapping", p)
        return None
    return obj


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dicts(out[k], v)  # type: ignore
        else:
            out[k] = v
    return out


def expand_env_placeholders(s: str) -> str:
    """Replace ``${VAR}`` with the variable's value; an unset variable is a ValueError."""
    def repl(m: re.Match) -> str:
        var = m.group(1)
        val = os.getenv(var)
        if val is None:
            raise ValueError(f"placeholder '${{{var}}}' not found in environment")
        return val

    return _ENV_PATTERN.sub(repl, s)


def _expand_entry(obj: Any) -> Any:
    if not isinstance(obj, dict):
        return obj
    out = dict(obj)
    cmd = out.get("command")
    if isinstance(cmd, list):
        out["command"] = [expand_env_placeholders(x) if isinstance(x, str) else x for x in cmd]
    env = out.get("env")
    if isinstance(env, dict):
        out["env"] = {k: expand_env_placeholders(v) if isinstance(v, str) else v for k, v in env.items()}
    if isinstance(out.get("cwd"), str):
        out["cwd"] = expand_env_placeholders(out["cwd"])
    return out


def _load_entries(section: str, raw: Any, build: Callable[[str, Any], T | None]) -> dict[str, T]:
    out: dict[str, T] = {}
    if raw is None:
        return out
    if not isinstance(raw, dict):
        logger.warning("ignoring %s: expected a mapping of name to settings", section)
        return out
    for name, obj in raw.items():
        if not isinstance(name, str) or not name:
            continue
        try:
            item = build(name, _expand_entry(obj))
        except ValueError as e:
            logger.warning("skipping %s.%s: %s", section, name, e)
            continue
        if item is None:
            logger.warning("skipping %s.%s: invalid entry", section, name)
            continue
        out[name] = item
    return out


def load_runtime_config(*, cwd: Path, explicit_path: Path | None = None, isolated: bool = False) -> RuntimeConfig:
    """Load runtime config.

    Merge order: global < project < explicit_path. ``isolated`` skips the
    global and project files.
    """
    merged: dict[str, Any] = {}
    loaded_from: list[Path] = []

    if not isolated:
        for p in _global_candidate_paths():
            if p.exists() and p.is_file():
                obj = _load_file(p)
                if obj is not None:
                    merged = _merge_dicts(merged, obj)
                    loaded_from.append(p)

        for p in _candidate_paths(cwd):
            if p.exists() and p.is_file():
                obj = _load_file(p)
                if obj is not None:
                    merged = _merge_dicts(merged, obj)
                    loaded_from.append(p)
                    break  # first match wins for project-level

    if explicit_path is not None:
        p = explicit_path.expanduser().resolve()
        if p.exists() and p.is_file():
            obj = _load_file(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from.append(p)
        else:
            logger.warning("config file not found: %s", p)

    cfg = RuntimeConfig()
    cfg.loaded_from = loaded_from

    md = merged.get("max_depth")
    if isinstance(md, int) and not isinstance(md, bool) and md > 0:
        cfg.max_depth = md
    elif md is not None:
        logger.warning("ignoring max_depth: expected a positive integer")

    rt = merged.get("remote_timeout")
    if isinstance(rt, (int, float)) and not isinstance(rt, bool) and rt > 0:
        cfg.remote_timeout = float(rt)
    elif rt is not None:
        logger.warning("ignoring remote_timeout: expected a positive number")

    ll = merged.get("log_level")
    if isinstance(ll, str) and ll.strip():
        cfg.log_level = ll.strip()

    cfg.process_tools = _load_entries("process_tools", merged.get("process_tools"), ProcessToolConfig.from_obj)
    cfg.remote_servers = _load_entries("remote_servers", merged.get("remote_servers"), RemoteServerConfig.from_obj)

    pre = merged.get("preload", [])
    if isinstance(pre, list):
        for f in pre:
            if isinstance(f, str) and f.strip():
                cfg.preload.append((cwd / f).expanduser())
            else:
                logger.warning("ignoring preload entry %r", f)
    else:
        logger.warning("ignoring preload: expected a list of paths")

    return cfg
