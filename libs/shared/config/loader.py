from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from apps.monitor.settings import MonitorSettings
from apps.viewer.settings import ViewerSettings

# --- paths --------------------------------------------------------------------


def _repo_root() -> Path:
    """Heuristic: walk up from this file until we find pyproject.toml."""
    p = Path(__file__).resolve()
    for ancestor in [p, *p.parents]:
        if (ancestor / "pyproject.toml").exists():
            return ancestor
    return Path.cwd()


def _profiles_dir(env: Mapping[str, str]) -> Path:
    # Allow override (useful for tests): TXL_CONFIG_DIR points *at* profiles/
    override = env.get("TXL_CONFIG_DIR")
    if override:
        return Path(override)
    return _repo_root() / "configs" / "profiles"


def _load_profile_table(env: Mapping[str, str], profile: str) -> dict[str, Any]:
    f = _profiles_dir(env) / f"{profile}.toml"
    if not f.exists():
        return {}
    text = f.read_text("utf-8")
    try:
        return tomllib.loads(text)
    except Exception as e:
        raise RuntimeError(f"Failed to parse profile TOML: {f}") from e


# --- env overlay helpers ------------------------------------------------------


def _coerce_env_value(raw: str) -> Any:
    """
    Try to parse JSON first (so lists/dicts/numbers/bools work),
    then fall back to the original string.
    """
    try:
        return json.loads(raw)
    except Exception:
        return raw


def _collect_env_for(
    fields: set[str], env: Mapping[str, str], prefix: str = "TXL_"
) -> dict[str, Any]:
    """
    Collect overrides like TXL_WINDOW_TITLE, TXL_CAPTURE -> {'window_title': '...'}.
    Nested tables also accept TXL_CAPTURE__TARGET_FPS=30 style keys.
    Case-insensitive; underscores only.
    """
    out: dict[str, Any] = {}
    upper_to_field = {f.upper(): f for f in fields}
    plen = len(prefix)
    for k, v in env.items():
        if not k.upper().startswith(prefix):
            continue
        key = k[plen:].upper()
        head, sep, tail = key.partition("__")
        if head not in upper_to_field:
            continue
        name = upper_to_field[head]
        if sep:
            out.setdefault(name, {})
            if isinstance(out[name], dict):
                out[name][tail.lower()] = _coerce_env_value(v)
        else:
            out[name] = _coerce_env_value(v)
    return out


def _merge(base: dict[str, Any], over: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay `over` onto `base`; nested tables merge key by key."""
    for k, v in over.items():
        if isinstance(v, Mapping) and isinstance(base.get(k), dict):
            base[k] = _merge(dict(base[k]), v)
        else:
            base[k] = v
    return base


def _resolve(env: Mapping[str, str] | None, profile: str | None) -> tuple[Mapping[str, str], str]:
    env = os.environ if env is None else env
    profile = (profile or env.get("TXL_PROFILE") or "dev").strip()
    return env, profile


def _table(toml_table: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = toml_table.get(name, {}) if isinstance(toml_table, dict) else {}
    return section if isinstance(section, dict) else {}


# --- public API ---------------------------------------------------------------


def load_viewer_settings(
    env: Mapping[str, str] | None = None, profile: str | None = None
) -> ViewerSettings:
    """
    Merge defaults (ViewerSettings) <- TOML [viewer] <- env TXL_*.
    Env examples: TXL_WINDOW_TITLE=cam, TXL_CAPTURE__ADAPTER=mss,
    TXL_RECOGNITION={"lang":"deu"}
    """
    env, profile = _resolve(env, profile)

    # start from defaults exposed by the model (no env read here)
    base = ViewerSettings.model_construct().model_dump()

    # TOML overlay
    toml_table = _load_profile_table(env, profile)
    _merge(base, _table(toml_table, "viewer"))

    # env overlay
    _merge(base, _collect_env_for(set(base.keys()), env))

    # validate
    return ViewerSettings.model_validate(base)


def load_monitor_settings(
    env: Mapping[str, str] | None = None, profile: str | None = None
) -> MonitorSettings:
    """
    Merge defaults (MonitorSettings) <- TOML [viewer] <- TOML [monitor] <- env TXL_*.
    The monitor runs its own session, so it inherits the viewer's table.
    """
    env, profile = _resolve(env, profile)

    base = MonitorSettings.model_construct().model_dump()

    toml_table = _load_profile_table(env, profile)
    _merge(base, _table(toml_table, "viewer"))
    _merge(base, _table(toml_table, "monitor"))

    _merge(base, _collect_env_for(set(base.keys()), env))

    return MonitorSettings.model_validate(base)
