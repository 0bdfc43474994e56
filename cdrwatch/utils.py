from __future__ import annotations
import copy, logging, os
from typing import Any

NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("cdrwatch")

DEFAULTS: dict[str, Any] = {
    "watch_dir": "/var/log/freeswitch/xml_cdr",
    "database": {
        "uri": "sqlite:///cdr.sqlite",
        "uri_env": "CDRWATCH_DATABASE_URL",
        "reconnect_seconds": 3,
    },
    "watcher": {
        "mode": "auto",
        "poll_interval": 0.1,
        "notify_timeout": 300,
        "rescan_seconds": 300,
    },
    "importer": {"table": "xml_cdr"},
    "settings": {"cdr": {"store_xml": True}},
    "logging": {"level": "INFO", "file": "logs/cdrwatch.log"},
    "alerts": {
        "slack_webhook_env": "SLACK_WEBHOOK_URL",
        "email_to_env": "ALERT_EMAIL_TO",
    },
}


def notice(log: logging.Logger, msg: str, *args):
    log.log(NOTICE, msg, *args)


def setup_logging(cfg: dict):
    opts = cfg.get("logging", {})
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    path = opts.get("file")
    if path:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        handlers.insert(0, logging.FileHandler(path))
    logging.basicConfig(
        level=opts.get("level", "INFO"),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def load_yaml(path: str) -> dict:
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def merge(base: dict, override: dict) -> dict:
    """Recursively overlay ``override`` on a copy of ``base``."""
    out = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def load_config(path: str | None = None) -> dict:
    cfg = merge(DEFAULTS, load_yaml(path) if path and os.path.exists(path) else {})
    db = cfg["database"]
    env_uri = os.getenv(db.get("uri_env") or "", "")
    if env_uri:
        db["uri"] = env_uri
    return cfg
