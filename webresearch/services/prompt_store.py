"""Prompt catalog backed by prompts/prompts.json (string.Template syntax)."""
from __future__ import annotations

import json
from pathlib import Path
from string import Template
from typing import Any


PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"
_catalog_cache: dict[str, Any] | None = None
_catalog_mtime_ns: int | None = None


def _load_catalog(path: Path = PROMPTS_PATH) -> dict[str, Any]:
    global _catalog_cache, _catalog_mtime_ns
    mtime_ns = path.stat().st_mtime_ns
    if _catalog_cache is not None and _catalog_mtime_ns == mtime_ns:
        return _catalog_cache

    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Prompt catalog must be a JSON object.")
    _catalog_cache = payload
    _catalog_mtime_ns = mtime_ns
    return payload


def get_prompt_template(key: str) -> str:
    """Return the raw template for a dotted key such as ``summary.user_prompt``."""
    node: Any = _load_catalog()
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(f"Prompt key not found: {key}")
        node = node[part]
    if not isinstance(node, str):
        raise TypeError(f"Prompt key must map to a string: {key}")
    return node


def render_prompt(key: str, **values: Any) -> str:
    try:
        return Template(get_prompt_template(key)).substitute(**values)
    except KeyError as exc:
        if str(exc.args[0]).startswith("Prompt key not found"):
            raise
        raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc


def render_prompt_pair(section: str, **values: Any) -> tuple[str, str]:
    """Render ``<section>.system_prompt`` and ``<section>.user_prompt`` together."""
    system = render_prompt(f"{section}.system_prompt", **values)
    user = render_prompt(f"{section}.user_prompt", **values)
    return system, user


def clear_prompt_cache() -> None:
    global _catalog_cache, _catalog_mtime_ns
    _catalog_cache = None
    _catalog_mtime_ns = None
