"""1回の実行におけるキャッシュの状態管理。

状態遷移:
- disabled: 既存のストアファイルを削除し、以後は何も作らない
- loaded -> evaluating -> flushed: ストアを1回読み、ファイルごとに判定/記録し、最後に1回だけ書く

同じインスタンスを全ファイルのタスクで共有する。変更はストア側のロックで直列化される。
"""
from __future__ import annotations
import os
from pathlib import Path

from .cache import CacheStore, build_key
from .fingerprint import Strategy

DISABLED = "disabled"
LOADED = "loaded"
EVALUATING = "evaluating"
FLUSHED = "flushed"


class CacheCoordinator:
    def __init__(self, location: Path, store: CacheStore | None):
        self.location = location
        self.store = store
        self.state = LOADED if store is not None else DISABLED

    @classmethod
    def open(
        cls,
        enabled: bool,
        location: str | os.PathLike[str],
        strategy: Strategy | None = None,
        config: str = "",
        version: str = "",
    ) -> "CacheCoordinator":
        loc = Path(location)
        if not enabled:
            CacheStore.delete(loc)
            return cls(loc, None)
        if strategy is None:
            strategy = Strategy.CONTENT
        return cls(loc, CacheStore.load(loc, strategy, config, version))

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def _key(self, path: str | os.PathLike[str]):
        assert self.store is not None
        return build_key(path, self.store.strategy, self.store.config, self.store.version)

    def is_cached(self, path: str | os.PathLike[str]) -> bool:
        """path の現在の状態がストアに反映済みなら True (整形を省略してよい)。"""
        if self.store is None:
            return False
        if self.state == LOADED:
            self.state = EVALUATING
        stored = self.store.lookup(path)
        if stored is None:
            return False
        return stored == self._key(path)

    def mark_formatted(self, path: str | os.PathLike[str]) -> None:
        """ディスク上の内容が整形済みになったファイルを記録する。書き込み後に呼ぶこと。"""
        if self.store is None:
            return
        self.store.record(path, self._key(path))

    def forget(self, path: str | os.PathLike[str]) -> None:
        if self.store is not None:
            self.store.forget(path)

    def close(self) -> None:
        """ストアを1回だけ書き出す。失敗時は OSError (状態は flushed になる)。"""
        if self.store is None or self.state == FLUSHED:
            return
        self.state = FLUSHED
        self.store.flush(self.location)


__all__ = ["CacheCoordinator", "DISABLED", "LOADED", "EVALUATING", "FLUSHED"]
