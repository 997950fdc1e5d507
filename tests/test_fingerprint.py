import os

import pytest

from kireifmt.fingerprint import FileFingerprint, Strategy, fingerprint


def _bump_mtime(p, seconds=5):
    st = os.stat(p)
    os.utime(p, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


def test_metadata_changes_on_touch(tmp_path):
    p = tmp_path / "a.txt"
    p.write_text("abc\n", encoding="utf-8")
    before = fingerprint(p, Strategy.METADATA)
    _bump_mtime(p)
    assert fingerprint(p, Strategy.METADATA) != before


def test_content_ignores_touch(tmp_path):
    p = tmp_path / "a.txt"
    p.write_text("abc\n", encoding="utf-8")
    before = fingerprint(p, Strategy.CONTENT)
    _bump_mtime(p)
    os.chmod(p, 0o600)
    assert fingerprint(p, Strategy.CONTENT) == before


def test_both_change_on_new_bytes(tmp_path):
    p = tmp_path / "a.txt"
    p.write_text("abc\n", encoding="utf-8")
    meta = fingerprint(p, Strategy.METADATA)
    content = fingerprint(p, Strategy.CONTENT)
    p.write_text("abcd\n", encoding="utf-8")
    _bump_mtime(p)
    assert fingerprint(p, Strategy.METADATA) != meta
    assert fingerprint(p, Strategy.CONTENT) != content


def test_strategy_tag_is_part_of_equality():
    # 同じ値でも戦略が違えば一致しない
    assert FileFingerprint(Strategy.METADATA, "x") != FileFingerprint(Strategy.CONTENT, "x")


def test_missing_file_raises_oserror(tmp_path):
    for strategy in Strategy:
        with pytest.raises(OSError):
            fingerprint(tmp_path / "nope.txt", strategy)


def test_parse_rejects_unknown_literal():
    assert Strategy.parse("metadata") is Strategy.METADATA
    with pytest.raises(ValueError):
        Strategy.parse("mtime")
