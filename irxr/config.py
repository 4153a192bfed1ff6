from __future__ import annotations
from enum import IntEnum
from typing import Any, Dict, Mapping
import json, os, pathlib

import yaml
from loguru import logger


class ServerPort(IntEnum):
    DISCOVERY = 7720
    SERVICE = 7721
    TOPIC = 7722


class ClientPort(IntEnum):
    DISCOVERY = 7720
    SERVICE = 7723
    TOPIC = 7724


DISCOVERY_TAG = "SimPub"
REGISTER_SERVICE = "Register"
DEFAULT_HOST = "irxr-client"
DEFAULT_SUBNET_MASK = "255.255.255.0"
DEFAULT_TIMEOUT_S = 1.0
DEFAULT_TICK_HZ = 60.0

# keys NetClient.from_config understands, with their defaults
DEFAULTS: Dict[str, Any] = {
    "host": DEFAULT_HOST,
    "discovery_port": int(ServerPort.DISCOVERY),
    "service_port": int(ServerPort.SERVICE),
    "topic_port": int(ServerPort.TOPIC),
    "client_topic_port": int(ClientPort.TOPIC),
    "subnet_mask": DEFAULT_SUBNET_MASK,
    "timeout_s": DEFAULT_TIMEOUT_S,
    "request_timeout_s": None,
    "tick_hz": DEFAULT_TICK_HZ,
}

def _load_json_section(path: pathlib.Path, section: str) -> Dict[str, Any]:
    cfg = json.loads(path.read_text()) or {}
    return cfg.get(section, {})

def _load_yaml_section(path: pathlib.Path, section: str) -> dict:
    cfg = yaml.safe_load(path.read_text()) or {}
    return cfg.get(section, {})

def load_config(path: str | os.PathLike[str], section: str = "irxr") -> Dict[str, Any]:
    """
    Load config from .json or .yml/.yaml.
    If the extension is missing/unknown, attempt JSON → YAML.
    """
    p = pathlib.Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")
    ext = p.suffix.lower()
    if ext == ".json":
        return _load_json_section(p, section) or {}
    if ext in (".yml", ".yaml"):
        return _load_yaml_section(p, section) or {}
    # Auto-detect
    for fn in (_load_json_section, _load_yaml_section):
        try:
            return fn(p, section) or {}
        except (ValueError, yaml.YAMLError, AttributeError):
            continue
    raise ValueError(f"Could not parse config file as JSON or YAML: {p}")

def with_env_overrides(cfg: Mapping[str, Any], prefix: str = "IRXR_") -> Dict[str, Any]:
    """
    Uppercase, underscore keys: IRXR_HOST, IRXR_TIMEOUT_S, etc.
    Booleans: '1','true','yes' => True ; '0','false','no' => False
    Numbers become int/float; anything else stays a string.
    """
    out: Dict[str, Any] = dict(cfg)

    def coerce(v: str) -> Any:
        s = v.strip()
        ls = s.lower()
        if ls in ("true","yes","on"): return True
        if ls in ("false","no","off"): return False
        if ls in ("none","null"): return None
        try:
            if "." in s and s.count(".") == 1: return float(s)
            return int(s)
        except ValueError:
            return s

    for k, v in os.environ.items():
        if not k.startswith(prefix):
            continue
        key = k[len(prefix):].lower()
        out[key] = coerce(v)
    return out

def resolve(cfg: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    """Fill in DEFAULTS for every key missing from `cfg`; unknown keys are dropped."""
    cfg = dict(cfg or {})
    for key in sorted(set(cfg) - set(DEFAULTS)):
        logger.warning(f"[IRXR/Config] ignoring unknown key {key!r}")
        del cfg[key]
    out = dict(DEFAULTS)
    out.update(cfg)
    return out
