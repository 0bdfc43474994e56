"""
Tests for file triage: name and size policy, payload decoding, leg designation.
"""

import logging
from urllib.parse import quote, quote_plus

import pytest

from cdrwatch.layout import Layout
from cdrwatch.triage import (
    MAX_SIZE,
    CandidateFile,
    Triage,
    TriageDecision,
    classify,
    decode_payload,
    leg_for,
)
from conftest import write_cdr


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize("name", ["junk.txt", "a_1.cdr.xml.tmp", "a_1.xml", "cdr.xml", "a_1.CDR.XML"])
    def test_wrong_suffix_is_skip(self, layout, name):
        path = write_cdr(layout, name)
        assert classify(CandidateFile(path)) is TriageDecision.SKIP

    def test_skip_does_not_stat(self, tmp_path):
        """Test a skipped name is decided without touching the disk."""
        assert classify(CandidateFile(tmp_path / "missing.log")) is TriageDecision.SKIP

    def test_empty_is_reject(self, layout):
        path = write_cdr(layout, "b_1.cdr.xml", b"")
        assert classify(CandidateFile(path)) is TriageDecision.REJECT_SIZE

    def test_ceiling_is_reject(self, layout):
        path = layout.base / "b_2.cdr.xml"
        with open(path, "wb") as f:
            f.truncate(MAX_SIZE)
        assert classify(CandidateFile(path)) is TriageDecision.REJECT_SIZE

    def test_just_under_ceiling_is_forward(self, layout):
        path = layout.base / "b_3.cdr.xml"
        with open(path, "wb") as f:
            f.truncate(MAX_SIZE - 1)
        assert classify(CandidateFile(path)) is TriageDecision.FORWARD

    def test_missing_file_raises(self, tmp_path):
        """Test a vanished CDR surfaces as an error for the caller to absorb."""
        with pytest.raises(FileNotFoundError):
            classify(CandidateFile(tmp_path / "gone.cdr.xml"))


class TestLeg:
    """Tests for leg_for()."""

    @pytest.mark.parametrize("name,leg", [
        ("a_1700000000.12345.cdr.xml", "a"),
        ("a_", "a"),
        ("b_1700000000.cdr.xml", "b"),
        ("A_upper.cdr.xml", "b"),
        ("ab.cdr.xml", "b"),
        ("a", "b"),
        ("", "b"),
        ("_a.cdr.xml", "b"),
    ])
    def test_leg(self, name, leg):
        assert leg_for(name) == leg


class TestDecodePayload:
    """Tests for decode_payload()."""

    def test_plain_payload_untouched(self):
        raw = b"<cdr>caf\xc3\xa9 %41 + x</cdr>"
        assert decode_payload(raw) is raw

    def test_percent_encoded_payload(self):
        xml = '<?xml version="1.0"?><cdr><a>1 + 2 = 3 & more</a></cdr>'
        assert decode_payload(quote(xml).encode()) == xml.encode()

    def test_plus_is_space(self):
        xml = "<cdr><name>John Smith</name></cdr>"
        encoded = quote_plus(xml).encode()
        assert encoded.startswith(b"%")
        assert decode_payload(encoded) == xml.encode()

    def test_utf8_escapes_are_byte_exact(self):
        assert decode_payload(b"%3Ccdr%3Ecaf%C3%A9%3C/cdr%3E") == "<cdr>café</cdr>".encode()


class TestCandidateFile:
    """Tests for path resolution and lazy reads."""

    def test_bare_name_resolves_against_base(self, tmp_path):
        candidate = CandidateFile.resolve("a_1.cdr.xml", tmp_path)
        assert candidate.path == tmp_path / "a_1.cdr.xml"
        assert candidate.name == "a_1.cdr.xml"

    def test_qualified_name_kept(self, tmp_path):
        full = str(tmp_path / "a_1.cdr.xml")
        assert CandidateFile.resolve(full, tmp_path).path == tmp_path / "a_1.cdr.xml"

    def test_content_read_once(self, layout):
        path = write_cdr(layout, "a_1.cdr.xml", b"<cdr/>")
        candidate = CandidateFile(path)
        assert candidate.content == b"<cdr/>"
        path.write_bytes(b"<changed/>")
        assert candidate.content == b"<cdr/>"


class TestTriageProcess:
    """End-to-end routing through Triage.process()."""

    def test_valid_a_leg_forwarded(self, layout, importer):
        """Test a valid a-leg file reaches the importer with raw content."""
        content = b'<?xml version="1.0"?><cdr><variables><uuid>x</uuid></variables></cdr>'
        content = content + b" " * (500 - len(content))
        name = "a_1700000000.12345.cdr.xml"
        write_cdr(layout, name, content)
        assert Triage(layout, importer).process(name) is TriageDecision.FORWARD
        assert importer.calls == [("a", content, name)]
        for bucket in ("size", "xml", "sql"):
            assert not (layout.bucket(bucket) / name).exists()

    def test_encoded_b_leg_forwarded_decoded(self, layout, importer):
        xml = "<cdr><variables><uuid>y</uuid></variables></cdr>"
        write_cdr(layout, "b_9.cdr.xml", quote(xml).encode())
        Triage(layout, importer).process("b_9.cdr.xml")
        assert importer.calls == [("b", xml.encode(), "b_9.cdr.xml")]

    def test_junk_skipped_and_logged(self, layout, importer, caplog):
        """Test a non-CDR name is left in place with a notice."""
        path = write_cdr(layout, "junk.txt", b"hello")
        caplog.set_level(logging.DEBUG, logger="cdrwatch")
        assert Triage(layout, importer).process("junk.txt") is TriageDecision.SKIP
        assert importer.calls == []
        assert path.read_bytes() == b"hello"
        assert any(r.levelname == "NOTICE" and "junk.txt" in r.getMessage() for r in caplog.records)

    def test_empty_moved_to_size_bucket(self, layout, importer):
        path = write_cdr(layout, "b_xyz.cdr.xml", b"")
        assert Triage(layout, importer).process("b_xyz.cdr.xml") is TriageDecision.REJECT_SIZE
        assert not path.exists()
        assert (layout.base / "failed" / "size" / "b_xyz.cdr.xml").is_file()
        assert importer.calls == []

    def test_oversized_move_overwrites(self, layout, importer):
        """Test a same-named file already in the bucket is replaced."""
        (layout.bucket("size") / "a_big.cdr.xml").write_bytes(b"stale")
        path = layout.base / "a_big.cdr.xml"
        with open(path, "wb") as f:
            f.truncate(MAX_SIZE + 10)
        Triage(layout, importer).process(str(path))
        moved = layout.bucket("size") / "a_big.cdr.xml"
        assert moved.stat().st_size == MAX_SIZE + 10
        assert not path.exists()

    def test_unresolved_layout_leaves_rejects(self, tmp_path, importer):
        """Test size rejects stay put when no landing directory is known."""
        path = tmp_path / "b_0.cdr.xml"
        path.write_bytes(b"")
        decision = Triage(Layout(None), importer).process(str(path))
        assert decision is TriageDecision.REJECT_SIZE
        assert path.exists()
