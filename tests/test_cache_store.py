import json
import threading

import pytest

from kireifmt.cache import CacheKey, CacheStore, build_key, default_cache_location
from kireifmt.fingerprint import FileFingerprint, Strategy


def _key(value="v", config="cfg", version="1"):
    return CacheKey(FileFingerprint(Strategy.CONTENT, value), config, version)


def test_missing_file_is_empty_store(tmp_path):
    store = CacheStore.load(tmp_path / "cache", Strategy.CONTENT, "cfg", "1")
    assert len(store) == 0


@pytest.mark.parametrize("payload", ["{not json", "[]", '{"files": []}', "\x00\x01"])
def test_corrupt_file_is_cold_start(tmp_path, payload):
    loc = tmp_path / "cache"
    loc.write_text(payload, encoding="utf-8")
    store = CacheStore.load(loc, Strategy.CONTENT, "cfg", "1")
    assert len(store) == 0


def test_flush_then_load_keeps_entries(tmp_path):
    loc = tmp_path / "deep" / "dir" / "cache"
    store = CacheStore(Strategy.CONTENT, "cfg", "1")
    store.record(tmp_path / "a.txt", _key("a"))
    store.record(tmp_path / "b.txt", _key("b"))
    store.flush(loc)

    data = json.loads(loc.read_text(encoding="utf-8"))
    assert data["strategy"] == "content"
    assert data["config"] == "cfg"
    assert data["version"] == "1"
    assert len(data["files"]) == 2
    # 一時ファイルが残っていないこと
    assert [p.name for p in loc.parent.iterdir()] == ["cache"]

    again = CacheStore.load(loc, Strategy.CONTENT, "cfg", "1")
    assert again.lookup(tmp_path / "a.txt") == _key("a")
    assert again.lookup(tmp_path / "c.txt") is None


@pytest.mark.parametrize("stamp", [
    (Strategy.METADATA, "cfg", "1"),
    (Strategy.CONTENT, "other", "1"),
    (Strategy.CONTENT, "cfg", "2"),
])
def test_stamp_mismatch_discards_everything(tmp_path, stamp):
    loc = tmp_path / "cache"
    store = CacheStore(Strategy.CONTENT, "cfg", "1")
    store.record(tmp_path / "a.txt", _key("a"))
    store.flush(loc)

    reloaded = CacheStore.load(loc, *stamp)
    assert len(reloaded) == 0
    # ファイル自体は次の flush まで残る
    assert loc.is_file()


def test_malformed_entry_is_dropped(tmp_path):
    loc = tmp_path / "cache"
    good = _key("a").to_dict()
    loc.write_text(json.dumps({
        "tool": "kireifmt",
        "version": "1",
        "strategy": "content",
        "config": "cfg",
        "files": {str(tmp_path / "a.txt"): good, str(tmp_path / "b.txt"): {"fingerprint": 3}},
    }), encoding="utf-8")
    store = CacheStore.load(loc, Strategy.CONTENT, "cfg", "1")
    assert len(store) == 1
    assert store.lookup(tmp_path / "a.txt") == _key("a")
    assert store.lookup(tmp_path / "b.txt") is None


def test_forget_and_delete_are_idempotent(tmp_path):
    loc = tmp_path / "cache"
    store = CacheStore(Strategy.CONTENT, "cfg", "1")
    store.forget(tmp_path / "never.txt")
    store.flush(loc)
    CacheStore.delete(loc)
    assert not loc.exists()
    CacheStore.delete(loc)
    assert not loc.exists()


def test_failed_flush_leaves_previous_file(tmp_path, monkeypatch):
    loc = tmp_path / "cache"
    store = CacheStore(Strategy.CONTENT, "cfg", "1")
    store.record(tmp_path / "a.txt", _key("a"))
    store.flush(loc)
    before = loc.read_text(encoding="utf-8")

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("kireifmt.cache.os.replace", boom)
    store.record(tmp_path / "b.txt", _key("b"))
    with pytest.raises(OSError):
        store.flush(loc)
    assert loc.read_text(encoding="utf-8") == before
    # 一時ファイルは片付けられている
    assert [p.name for p in tmp_path.iterdir()] == ["cache"]


def test_concurrent_record(tmp_path):
    store = CacheStore(Strategy.CONTENT, "cfg", "1")

    def worker(n):
        for i in range(200):
            store.record(tmp_path / f"f{n}_{i}.txt", _key(f"{n}-{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(store) == 8 * 200


def test_build_key_uses_strategy(tmp_path):
    p = tmp_path / "a.txt"
    p.write_text("x\n", encoding="utf-8")
    meta = build_key(p, Strategy.METADATA, "cfg", "1")
    content = build_key(p, Strategy.CONTENT, "cfg", "1")
    assert meta.fingerprint.strategy is Strategy.METADATA
    assert content.fingerprint.strategy is Strategy.CONTENT
    assert meta != content
    assert build_key(p, Strategy.CONTENT, "cfg", "1") == content
    assert build_key(p, Strategy.CONTENT, "cfg2", "1") != content


def test_default_location_under_project_root(tmp_path):
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n", encoding="utf-8")
    sub = tmp_path / "src" / "pkg"
    sub.mkdir(parents=True)
    loc = default_cache_location(sub)
    assert loc == tmp_path.resolve() / "node_modules" / ".cache" / "kireifmt" / ".kireifmt-cache"
