"""入力ファイルの走査ユーティリティ。

- 明示されたファイルはそのまま対象にする。
- ディレクトリは再帰的に辿り、VCS/依存物/キャッシュ用ディレクトリとバイナリらしいものは除外(ヒューリスティック)。
"""
from __future__ import annotations
import codecs
import os
from pathlib import Path
from typing import Iterator, Iterable, Tuple

BINARY_BYTES = set(range(0, 9)) | {11, 12} | set(range(14, 32))
IGNORED_DIRS = frozenset({".git", ".hg", ".svn", "node_modules", "__pycache__", ".cache"})
PROJECT_MARKERS = ("pyproject.toml", "setup.cfg", "setup.py", "package.json")
ENCODING_CANDIDATES = ("utf-8", "utf-8-sig", "cp932", "shift_jis")
_UTF16_BOMS = ((codecs.BOM_UTF16_LE, "utf-16-le"), (codecs.BOM_UTF16_BE, "utf-16-be"))
_SNIFF_SIZE = 8192


def is_probably_text(data: bytes, threshold: float = 0.30) -> bool:
    if not data:
        return True
    non_text = sum(b in BINARY_BYTES for b in data)
    ratio = non_text / len(data)
    return ratio < threshold


def _looks_like_text(path: Path) -> bool:
    try:
        with path.open("rb") as f:
            head = f.read(_SNIFF_SIZE)
    except OSError:
        # 読めないファイルは対象に残し、処理時にファイル単位のエラーとして報告させる
        return True
    return head.startswith(tuple(bom for bom, _ in _UTF16_BOMS)) or is_probably_text(head)


def read_text(path: Path, encoding_candidates=ENCODING_CANDIDATES) -> Tuple[str, str] | None:
    """(テキスト, 復号できたエンコーディング) を返す。バイナリ/復号不能なら None。

    UTF-16 は BOM 付きの場合だけ受け付ける。復号結果を同じエンコーディングで
    書き戻して元のバイト列に戻らない候補は採用しない。
    読み込み自体の失敗は OSError としてそのまま送出する。
    """
    raw = path.read_bytes()
    for bom, enc in _UTF16_BOMS:
        if raw.startswith(bom):
            try:
                return raw[len(bom):].decode(enc), enc
            except UnicodeDecodeError:
                return None
    if not is_probably_text(raw):
        return None
    for enc in encoding_candidates:
        try:
            text = raw.decode(enc)
            if encode_text(text, enc) != raw:
                continue
        except UnicodeError:
            continue
        return text, enc
    return None


def encode_text(text: str, encoding: str) -> bytes:
    """read_text が返したエンコーディングで書き戻す。UTF-16 は BOM を付け直す。"""
    for bom, enc in _UTF16_BOMS:
        if enc == encoding:
            return bom + text.encode(enc)
    return text.encode(encoding)


def iter_files(paths: Iterable[str | os.PathLike[str]], ignore: Iterable[str | os.PathLike[str]] = ()) -> Iterator[Path]:
    """paths を展開してファイルを列挙する。ignore に含まれるファイル(キャッシュ本体など)は飛ばす。"""
    skip = {Path(p).resolve() for p in ignore}
    seen: set[Path] = set()
    for p in paths:
        path = Path(p)
        if path.is_file():
            candidates: Iterable[Path] = [path]
        elif path.is_dir():
            candidates = _walk(path)
        else:
            continue
        for f in candidates:
            resolved = f.resolve()
            if resolved in skip or resolved in seen:
                continue
            seen.add(resolved)
            yield f


def _walk(root: Path) -> Iterator[Path]:
    for current, dirs, files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRS)
        for name in sorted(files):
            f = Path(current) / name
            if _looks_like_text(f):
                yield f


def find_project_root(start: Path) -> Path:
    """start から親方向にプロジェクトのメタデータファイルを探す。見つからなければ start。"""
    start = start.resolve()
    for d in (start, *start.parents):
        if any((d / marker).is_file() for marker in PROJECT_MARKERS):
            return d
    return start


__all__ = ["iter_files", "read_text", "encode_text", "is_probably_text", "find_project_root", "IGNORED_DIRS"]
