"""
cdrwatch: call detail record landing-directory daemon
- watcher: daemon entry (config, logging, signals)
- loop: watch/dispatch loop (inotify or polling, overflow drains)
- sources: inotify subscription and directory polling
- triage: name/size triage, URL-decoding, leg designation
- importer: default XML CDR importer (pandas -> SQLAlchemy)
- guard / db / settings: database liveness gate and settings reload
- layout: landing directory and failed/{size,xml,sql} buckets
- alerts: email/slack on downgrade and fatal startup
- cdr_generator: synthetic CDR bursts for load testing
"""

__all__ = [
    "watcher",
    "loop",
    "sources",
    "triage",
    "importer",
    "guard",
    "db",
    "settings",
    "layout",
    "alerts",
    "schemas",
    "errors",
    "utils",
    "cdr_generator",
]

__version__ = "0.1.0"

from dotenv import load_dotenv

load_dotenv()
