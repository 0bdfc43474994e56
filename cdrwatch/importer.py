from __future__ import annotations
import logging, os, shutil, socket, uuid
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from .schemas import CdrRecord
from .settings import Settings

logger = logging.getLogger("cdrwatch.importer")

UUID_PATHS = ("variables/uuid", "callflow/caller_profile/uuid")


def record_uuid(root: ET.Element) -> str:
    for path in UUID_PATHS:
        value = (root.findtext(path) or "").strip()
        if value:
            return value
    return str(uuid.uuid4())


class CdrImporter:
    """Default record importer: well-formed XML in, one row per file out.

    Files that do not parse go to ``failed/xml``; files whose row cannot be
    written go to ``failed/sql``. Imported files are removed.
    """

    def __init__(self, db, layout, settings: Settings | None = None, table: str = "xml_cdr"):
        self.db = db
        self.layout = layout
        self.settings = settings or Settings()
        self.table = table
        self.hostname = socket.gethostname()

    def build_record(self, root: ET.Element, leg: str, payload: bytes, filename: str) -> CdrRecord:
        store_xml = self.settings.get_bool("cdr", "store_xml", True)
        return CdrRecord(
            xml_cdr_uuid=record_uuid(root),
            leg=leg,
            filename=filename,
            hostname=self.hostname,
            xml=payload.decode("utf-8", errors="replace") if store_xml else None,
            insert_date=datetime.now(timezone.utc),
        )

    def write(self, record: CdrRecord):
        df = pd.DataFrame([record.model_dump()])
        df.to_sql(self.table, self.db.engine, if_exists="append", index=False)

    def import_record(self, leg: str, payload: bytes, filename: str) -> bool:
        path = self.layout.path_for(filename)
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as e:
            logger.warning(f"Invalid XML in {filename}: {e}")
            self._fail(path, "xml")
            return False

        record = self.build_record(root, leg, payload, filename)
        try:
            self.write(record)
        except SQLAlchemyError as e:
            logger.warning(f"Insert failed for {filename}: {e}")
            self._fail(path, "sql")
            return False

        os.remove(path)
        logger.info(f"Imported {filename} leg={leg} uuid={record.xml_cdr_uuid}")
        return True

    def _fail(self, path, bucket: str):
        dest = self.layout.bucket(bucket) / os.path.basename(path)
        shutil.move(str(path), str(dest))
