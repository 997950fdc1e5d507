"""整形結果キャッシュ: キーの組み立てと永続ストア。

ストアは1つの JSON 文書で、全体に (version, strategy, config) のスタンプを持つ。
読み込み時にスタンプが現在の実行と食い違えば、エントリは1件も残さず空として扱う。
"""
from __future__ import annotations
import json
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from .fingerprint import FileFingerprint, Strategy, fingerprint
from .file_scanner import find_project_root

TOOL_NAME = "kireifmt"
DEFAULT_CACHE = f".{TOOL_NAME}-cache"


@dataclass(frozen=True)
class CacheKey:
    fingerprint: FileFingerprint
    config: str
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint.to_dict(),
            "config": self.config,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheKey":
        return cls(
            fingerprint=FileFingerprint.from_dict(data["fingerprint"]),
            config=str(data["config"]),
            version=str(data["version"]),
        )


def build_key(path: str | os.PathLike[str], strategy: Strategy, config: str, version: str) -> CacheKey:
    return CacheKey(fingerprint(path, strategy), config, version)


def default_cache_location(cwd: str | os.PathLike[str] | None = None) -> Path:
    """<root>/node_modules/.cache/kireifmt/.kireifmt-cache"""
    root = find_project_root(Path(cwd) if cwd is not None else Path.cwd())
    return root / "node_modules" / ".cache" / TOOL_NAME / DEFAULT_CACHE


class CacheStore:
    """絶対パス -> CacheKey の対応表。record/forget はスレッドセーフ。"""

    def __init__(self, strategy: Strategy, config: str, version: str,
                 entries: Optional[Dict[str, CacheKey]] = None):
        self.strategy = strategy
        self.config = config
        self.version = version
        self._entries: Dict[str, CacheKey] = dict(entries or {})
        self._lock = threading.Lock()

    @classmethod
    def load(cls, location: str | os.PathLike[str], strategy: Strategy, config: str, version: str) -> "CacheStore":
        store = cls(strategy, config, version)
        p = Path(location)
        if not p.is_file():
            return store
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return store
        if not isinstance(data, dict) or not isinstance(data.get("files"), dict):
            return store
        if (data.get("version"), data.get("strategy"), data.get("config")) != (version, strategy.value, config):
            return store
        for path, raw in data["files"].items():
            try:
                store._entries[str(path)] = CacheKey.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                continue
        return store

    @staticmethod
    def _key(path: str | os.PathLike[str]) -> str:
        return str(Path(path).resolve())

    def lookup(self, path: str | os.PathLike[str]) -> CacheKey | None:
        return self._entries.get(self._key(path))

    def record(self, path: str | os.PathLike[str], key: CacheKey) -> None:
        k = self._key(path)
        with self._lock:
            self._entries[k] = key

    def forget(self, path: str | os.PathLike[str]) -> None:
        k = self._key(path)
        with self._lock:
            self._entries.pop(k, None)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            files = {path: key.to_dict() for path, key in sorted(self._entries.items())}
        return {
            "tool": TOOL_NAME,
            "version": self.version,
            "strategy": self.strategy.value,
            "config": self.config,
            "files": files,
        }

    def flush(self, location: str | os.PathLike[str]) -> None:
        """一時ファイルに書いてから rename する。途中で落ちても壊れたストアは残らない。"""
        p = Path(location)
        p.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self.to_dict(), ensure_ascii=False, indent=2)
        fd, tmp = tempfile.mkstemp(prefix=p.name + ".", suffix=".tmp", dir=str(p.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, p)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise

    @staticmethod
    def delete(location: str | os.PathLike[str]) -> None:
        """ストアファイルを消す。存在しなければ何もしない。"""
        try:
            Path(location).unlink()
        except FileNotFoundError:
            pass


__all__ = [
    "CacheKey",
    "CacheStore",
    "build_key",
    "default_cache_location",
    "DEFAULT_CACHE",
    "TOOL_NAME",
]
