from __future__ import annotations
import sys, random, time, uuid
from pathlib import Path
from urllib.parse import quote_plus

from .triage import MAX_SIZE

"""
Synthetic CDR generator for the landing directory
- Writes a/b leg XML CDR files named <leg>_<epoch>.<seq>.cdr.xml
- URL-encodes a fraction of payloads (legacy producers)
- Emits zero-byte and oversized files for the size bucket
- Emits non-CDR names that should be skipped
- Emits malformed XML for the xml bucket

Usage:
  python -m cdrwatch.cdr_generator <incoming_dir> [count]
"""

RAND = random.Random(42)

CDR_TEMPLATE = """<?xml version="1.0"?>
<cdr core-uuid="{core}">
  <variables>
    <uuid>{uuid}</uuid>
    <direction>{direction}</direction>
    <caller_id_number>{caller}</caller_id_number>
    <destination_number>{dest}</destination_number>
    <start_epoch>{epoch}</start_epoch>
    <billsec>{billsec}</billsec>
  </variables>
</cdr>
"""


def cdr_xml(epoch: int) -> str:
    return CDR_TEMPLATE.format(
        core=uuid.UUID(int=RAND.getrandbits(128)),
        uuid=uuid.UUID(int=RAND.getrandbits(128)),
        direction=RAND.choice(["inbound", "outbound", "local"]),
        caller=f"1{RAND.randint(2000000000, 9999999999)}",
        dest=str(RAND.randint(100, 999)),
        epoch=epoch,
        billsec=RAND.randint(0, 3600),
    )


def _write(dest_dir: Path, name: str, data: bytes) -> Path:
    out = dest_dir / name
    out.write_bytes(data)
    return out


def generate(dest_dir: Path, count: int, *, encoded: float = 0.05, empty: float = 0.01,
             oversized: float = 0.005, junk: float = 0.01, malformed: float = 0.01) -> dict:
    dest_dir.mkdir(parents=True, exist_ok=True)
    epoch = int(time.time())
    stats = {"valid": 0, "encoded": 0, "empty": 0, "oversized": 0, "junk": 0, "malformed": 0}
    for seq in range(count):
        leg = RAND.choice("ab")
        name = f"{leg}_{epoch}.{seq:05d}.cdr.xml"
        roll = RAND.random()
        if roll < empty:
            _write(dest_dir, name, b""); stats["empty"] += 1
        elif roll < empty + oversized:
            _write(dest_dir, name, b" " * MAX_SIZE); stats["oversized"] += 1
        elif roll < empty + oversized + junk:
            _write(dest_dir, f"{leg}_{epoch}.{seq:05d}.tmp", b"partial"); stats["junk"] += 1
        elif roll < empty + oversized + junk + malformed:
            _write(dest_dir, name, cdr_xml(epoch)[:-12].encode()); stats["malformed"] += 1
        elif roll < empty + oversized + junk + malformed + encoded:
            _write(dest_dir, name, quote_plus(cdr_xml(epoch)).encode()); stats["encoded"] += 1
        else:
            _write(dest_dir, name, cdr_xml(epoch).encode()); stats["valid"] += 1
    return stats


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m cdrwatch.cdr_generator <incoming_dir> [count]")
        sys.exit(1)
    dest = Path(sys.argv[1])
    count = int(sys.argv[2]) if len(sys.argv) > 2 else 1000
    stats = generate(dest, count)
    print(f"Wrote {count} files -> {dest}: {stats}")

if __name__ == "__main__":
    main()
