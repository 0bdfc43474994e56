from __future__ import annotations
import os, sys, traceback
from datetime import datetime, timedelta
from pathlib import Path

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from cdrwatch.layout import BUCKETS
from cdrwatch.triage import CDR_SUFFIX
from cdrwatch.utils import load_config

DEFAULT_LOG = "logs/cdrwatch.log"

def human(n: float) -> str:
    return f"{n:,.0f}"

def files_in(p: Path, pattern: str = "*") -> list[Path]:
    if not p.is_dir():
        return []
    return [f for f in p.glob(pattern) if f.is_file()]

def count_dir(p: Path, pattern: str = "*") -> int:
    return len(files_in(p, pattern))

def recent_files_per_minute(p: Path, minutes: int = 5) -> float:
    """Pending CDRs modified in the last ``minutes``, per minute."""
    cutoff = (datetime.now() - timedelta(minutes=minutes)).timestamp()
    hits = 0
    for f in files_in(p, f"*{CDR_SUFFIX}"):
        try:
            hits += f.stat().st_mtime >= cutoff
        except FileNotFoundError:
            continue  # imported while we were looking
    return hits / max(minutes, 1)

def imported_rows(uri: str, table: str) -> int | None:
    """Row count of the CDR table, None when the table does not exist yet."""
    eng = create_engine(uri)
    try:
        if not inspect(eng).has_table(table):
            return None
        with eng.connect() as conn:
            return int(conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar())
    finally:
        eng.dispose()

def tail(path: Path, lines: int = 20) -> list[str]:
    if not path.exists():
        return ["<log file not found>"]
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            data = b""
            while size > 0 and data.count(b"\n") <= lines:
                step = min(1024, size)
                f.seek(size - step)
                data = f.read(step) + data
                size -= step
    except OSError:
        return [traceback.format_exc()]
    txt = data.decode("utf-8", errors="replace").splitlines()[-lines:]
    return txt if txt else ["<empty>"]

def main(cfg_path: str = "config.yaml"):
    cfg = load_config(cfg_path)
    watch_dir = Path(cfg["watch_dir"])
    log_path = Path(cfg["logging"].get("file") or DEFAULT_LOG)
    table = cfg["importer"].get("table", "xml_cdr")

    print("="*70)
    print("cdrwatch: Landing Directory Health Report")
    print(f"As of: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("="*70)

    pending = count_dir(watch_dir, f"*{CDR_SUFFIX}")
    other = count_dir(watch_dir) - pending
    rpm = recent_files_per_minute(watch_dir, minutes=5)

    print(f"\nLanding folder: {watch_dir}")
    print(f"  *{CDR_SUFFIX} pending:  {human(pending)}")
    print(f"  Other files (skipped): {human(other)}")
    print(f"  Arrival rate (5m):     {rpm:.2f} files/min")

    print("\nFailure buckets:")
    for name in BUCKETS:
        print(f"  failed/{name:<5} {human(count_dir(watch_dir / 'failed' / name))}")

    try:
        rows = imported_rows(cfg["database"]["uri"], table)
    except SQLAlchemyError as e:
        print(f"\nDatabase: unreachable ({e.__class__.__name__})")
    else:
        if rows is None:
            print(f"\nDatabase: table '{table}' not found")
        else:
            print(f"\nImported rows ({table}): {human(rows)}")

    print(f"\nLog tail: {log_path}")
    for line in tail(log_path, lines=20):
        print("  " + line)

    print("\nDone.\n")

if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "config.yaml")
