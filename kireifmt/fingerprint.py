"""ファイルの変更検出に使う指紋(fingerprint)の計算。

2つの戦略を提供する:
- metadata: stat のみ (mtime_ns, size)。読み込み不要で速いが、同一内容の再保存でも変化する。
- content: ファイル全体の SHA-256。mtime/パーミッションの変化には反応しない。

指紋には戦略タグを埋め込む。異なる戦略の指紋は決して等しくならない。
"""
from __future__ import annotations
import enum
import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

_CHUNK = 1 << 16


class Strategy(str, enum.Enum):
    CONTENT = "content"
    METADATA = "metadata"

    @classmethod
    def parse(cls, value: str) -> "Strategy":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown cache strategy: {value!r}") from None


@dataclass(frozen=True)
class FileFingerprint:
    strategy: Strategy
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"strategy": self.strategy.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileFingerprint":
        return cls(strategy=Strategy(data["strategy"]), value=str(data["value"]))


def metadata_fingerprint(path: str | os.PathLike[str]) -> FileFingerprint:
    stat = os.stat(path)
    return FileFingerprint(Strategy.METADATA, f"{stat.st_mtime_ns}:{stat.st_size}")


def content_fingerprint(path: str | os.PathLike[str]) -> FileFingerprint:
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            hasher.update(chunk)
    return FileFingerprint(Strategy.CONTENT, hasher.hexdigest())


_STRATEGIES = {
    Strategy.METADATA: metadata_fingerprint,
    Strategy.CONTENT: content_fingerprint,
}


def fingerprint(path: str | os.PathLike[str] | Path, strategy: Strategy) -> FileFingerprint:
    """path の現在の状態から指紋を計算する。stat/読込に失敗すると OSError。"""
    return _STRATEGIES[strategy](path)


__all__ = [
    "Strategy",
    "FileFingerprint",
    "fingerprint",
    "metadata_fingerprint",
    "content_fingerprint",
]
