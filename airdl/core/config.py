# airdl/core/config.py
from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---- schema & defaults -------------------------------------------------------
SCHEMA_VERSION = 1
DEFAULT_BASE_DIR = "models"
DEFAULT_CFG: Dict[str, Any] = {
    "schema": SCHEMA_VERSION,
    "token": "",           # Civitai API key (bearer token)
    "base_dir": "",        # root for downloaded models; "" = ./models
    "verbose": False,      # debug logging
}

# ---- locations ---------------------------------------------------------------
# Override with env vars:
#   AIRDL_CONFIG=<full path to config.json>
#   AIRDL_DIR=<directory to place config.json>
# Values:
#   CIVITAI_TOKEN, AIRDL_BASE_DIR
def _windows_roaming_dir() -> Path:
    return Path(os.environ.get("APPDATA", Path.home() / "AppData/Roaming"))

def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

def config_dir() -> Path:
    env_dir = os.environ.get("AIRDL_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()
    if os.name == "nt":
        return (_windows_roaming_dir() / "AIR_Downloader").resolve()
    return (_xdg_config_home() / "airdl").resolve()

def config_path() -> Path:
    env_path = os.environ.get("AIRDL_CONFIG")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return config_dir() / "config.json"

# ---- load / save -------------------------------------------------------------
def _merge_defaults(cfg: Dict[str, Any]) -> Dict[str, Any]:
    out = DEFAULT_CFG.copy()
    out.update(cfg or {})
    if "schema" not in out:
        out["schema"] = SCHEMA_VERSION
    return out

def load_cfg() -> Dict[str, Any]:
    p = config_path()
    if not p.exists():
        return DEFAULT_CFG.copy()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        # keep a .bad copy and start fresh
        logger.warning("Config %s is unreadable (%s); using defaults", p, e)
        try:
            p.replace(p.with_suffix(".bad.json"))
        except OSError as e2:
            logger.warning("Could not move aside %s: %s", p, e2)
        return DEFAULT_CFG.copy()
    if not isinstance(raw, dict):
        logger.warning("Config %s is not a JSON object; using defaults", p)
        return DEFAULT_CFG.copy()
    return _merge_defaults(raw)

def save_cfg(cfg: Dict[str, Any]) -> Path:
    p = config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(".tmp")
    data = _merge_defaults(cfg)
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(p)
    return p

# ---- effective settings ------------------------------------------------------
def resolve_token(cli_token: Optional[str], cfg: Dict[str, Any]) -> Optional[str]:
    """CLI flag > CIVITAI_TOKEN > config file."""
    for v in (cli_token, os.environ.get("CIVITAI_TOKEN"), cfg.get("token")):
        if v and str(v).strip():
            return str(v).strip()
    return None

def resolve_base_dir(cli_dir: Optional[str], cfg: Dict[str, Any]) -> Path:
    """CLI flag > AIRDL_BASE_DIR > config file > ./models."""
    for v in (cli_dir, os.environ.get("AIRDL_BASE_DIR"), cfg.get("base_dir")):
        if v and str(v).strip():
            return Path(str(v).strip()).expanduser()
    return Path(DEFAULT_BASE_DIR)
