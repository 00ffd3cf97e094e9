import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".timelearn"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

def load_config() -> Dict[str, Any]:
    """Load config from ~/.timelearn/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., TIMELEARN_DB env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    store_cfg = config.get("store", {})
    config["store"] = {
        "path": Path(os.getenv("TIMELEARN_DB", store_cfg.get("path", str(CONFIG_DIR / "lessons.db")))).expanduser(),
        "kind": os.getenv("TIMELEARN_KIND", store_cfg.get("kind", "simple")),
    }
    scheduler_cfg = config.get("scheduler", {})
    config["scheduler"] = {
        "batch_size": int(os.getenv("TIMELEARN_BATCH_SIZE", scheduler_cfg.get("batch_size", 2))),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("TIMELEARN_LOG_LEVEL", logging_cfg.get("level", "WARNING")).upper(),
    }
    return config

def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('store', 'kind')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
