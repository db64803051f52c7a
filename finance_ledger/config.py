# finance_ledger/config.py
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Dict

import yaml

from finance_ledger.storage import XorMask

DEFAULT_CONFIG: Dict[str, object] = {
    "data_dir": ".",
    "export_path": "export.csv",
    "obfuscation": {
        "enabled": False,
        "key": None,
    },
}

KEY_ENV = "LEDGERLY_OBFUSCATION_KEY"


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: str | Path | None = None) -> Dict[str, object]:
    if path is None or not Path(path).exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    with Path(path).open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return _merge_defaults(data, DEFAULT_CONFIG)


def parse_key(raw):
    """
    Normalise an obfuscation key. Digit strings are byte values ("7" is 7, "42"
    is 42); any other string must be a single character used by its code point.
    """
    if isinstance(raw, str) and raw.strip().isdecimal():
        return int(raw)
    return raw


def resolve_mask(config: Dict[str, object]) -> XorMask | None:
    """
    Build the file obfuscation mask from config, with the environment key
    taking precedence. Returns None when obfuscation is off.
    """
    obf = config.get("obfuscation") or {}
    env_key = os.getenv(KEY_ENV)
    if env_key:
        return XorMask(parse_key(env_key))
    if not obf.get("enabled") or obf.get("key") in (None, ""):
        return None
    return XorMask(parse_key(obf["key"]))
