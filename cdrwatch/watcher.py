from __future__ import annotations
import signal, socket, sys
from .utils import logger, load_config, notice, setup_logging
from .alerts import alert
from .db import Database
from .errors import ProvisioningError
from .guard import ConnectionGuard
from .importer import CdrImporter
from .layout import Layout
from .loop import EventLoop
from .settings import Settings
from .triage import Triage


def build(cfg: dict) -> EventLoop:
    db = Database(cfg["database"]["uri"])
    layout = Layout(cfg.get("watch_dir"))
    importer = CdrImporter(db, layout, Settings(cfg.get("settings")), cfg["importer"].get("table", "xml_cdr"))

    def reload_settings():
        importer.settings = Settings.load(db, cfg.get("settings"))
        notice(logger, "Settings reloaded")

    guard = ConnectionGuard(db, on_reconnect=reload_settings,
                            interval=cfg["database"].get("reconnect_seconds", 3))
    watcher = cfg["watcher"]
    host = socket.gethostname()
    return EventLoop(
        layout, guard, Triage(layout, importer),
        mode=watcher.get("mode", "auto"),
        poll_interval=watcher.get("poll_interval", 0.1),
        notify_timeout=watcher.get("notify_timeout", 300),
        rescan_interval=watcher.get("rescan_seconds", 300),
        on_downgrade=lambda: alert("inotify lost", f"{host}: {layout.base} is now polled", cfg),
    )


def run(cfg_path: str = "config.yaml") -> int:
    cfg = load_config(cfg_path)
    setup_logging(cfg)
    loop = build(cfg)

    def handle_stop(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        loop.stop()

    signal.signal(signal.SIGTERM, handle_stop)
    signal.signal(signal.SIGINT, handle_stop)

    notice(logger, f"Watching {cfg['watch_dir']} for call detail records")
    try:
        return loop.run()
    except ProvisioningError as e:
        logger.critical(f"Startup failed: {e}")
        alert("cdrwatch startup failed", str(e), cfg)
        return 1


def main():
    sys.exit(run(sys.argv[1] if len(sys.argv) > 1 else "config.yaml"))

if __name__ == "__main__":
    main()
