"""高レベル API: ファイル/パス群の整形

- キャッシュ判定 (ヒットなら整形を省略)
- 整形 / 書き戻し / 差分判定
- 並列実行と実行全体のタイムアウト
"""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed, TimeoutError as FuturesTimeout
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List

from .coordinator import CacheCoordinator
from .file_scanner import encode_text, iter_files, read_text
from .formatter import FormatOptions, format_text

MODE_STDOUT = "stdout"
MODE_WRITE = "write"
MODE_CHECK = "check"
MODE_LIST_DIFFERENT = "list-different"


@dataclass
class FileResult:
    path: Path
    elapsed_ms: float = 0.0
    cached: bool = False
    # 整形前後で内容が異なったか (write では書き換えたか)
    changed: bool = False
    # stdout モードでの出力内容
    output: str | None = None
    error: str | None = None


class RunInterrupted(Exception):
    """タイムアウト/中断で打ち切られた。results は完了済みの分。"""

    def __init__(self, results: List[FileResult], reason: str):
        super().__init__(reason)
        self.results = results
        self.reason = reason


def format_file(path: Path, options: FormatOptions, coordinator: CacheCoordinator, mode: str = MODE_WRITE) -> FileResult:
    """1ファイルを処理する。I/O エラー等は例外として呼び出し側に伝える。"""
    start = time.perf_counter()
    result = FileResult(path=path)
    cached = coordinator.is_cached(path)
    decoded = read_text(path) if (not cached or mode == MODE_STDOUT) else None
    if cached:
        result.cached = True
        if decoded is not None:
            result.output = decoded[0]
        result.elapsed_ms = (time.perf_counter() - start) * 1000
        return result
    if decoded is None:
        raise ValueError("binary or undecodable file")
    text, encoding = decoded
    formatted = format_text(text, options)
    result.changed = formatted != text
    if mode == MODE_STDOUT:
        result.output = formatted
    if result.changed and mode == MODE_WRITE:
        path.write_bytes(encode_text(formatted, encoding))
    # ディスク上が整形済みになったものだけ記録する
    if not result.changed or mode == MODE_WRITE:
        coordinator.mark_formatted(path)
    else:
        coordinator.forget(path)
    result.elapsed_ms = (time.perf_counter() - start) * 1000
    return result


def _safe_format(path: Path, options: FormatOptions, coordinator: CacheCoordinator, mode: str) -> FileResult:
    try:
        return format_file(path, options, coordinator, mode)
    except (OSError, ValueError) as e:
        return FileResult(path=path, error=str(e))


def format_paths(
    paths: Iterable[str],
    options: FormatOptions,
    coordinator: CacheCoordinator,
    mode: str = MODE_WRITE,
    jobs: int = 1,
    timeout: float | None = None,
    on_result: Callable[[FileResult], None] | None = None,
) -> List[FileResult]:
    """paths 配下のファイルを整形し、完了順に結果を返す。

    timeout(秒) を超えた場合や Ctrl-C の場合は未完了のタスクを取り消し、
    完了分の結果を持たせた RunInterrupted を送出する。
    キャッシュの書き出しは呼び出し側 (coordinator.close) の責務。
    """
    files = list(iter_files(paths, ignore=[coordinator.location]))
    results: List[FileResult] = []

    def _collect(res: FileResult) -> None:
        results.append(res)
        if on_result is not None:
            on_result(res)

    deadline = None if timeout is None else time.monotonic() + timeout
    # 並列/直列実行
    if jobs and jobs > 1:
        ex = ThreadPoolExecutor(max_workers=jobs)
        futs = [ex.submit(_safe_format, f, options, coordinator, mode) for f in files]
        collected = set()

        def _drain() -> None:
            # 取り消し前に走り始めていたタスクは最後まで実行されるので、その結果も報告する
            ex.shutdown(wait=True, cancel_futures=True)
            for fut in futs:
                if fut not in collected and fut.done() and not fut.cancelled():
                    collected.add(fut)
                    _collect(fut.result())

        try:
            for fut in as_completed(futs, timeout=timeout):
                collected.add(fut)
                _collect(fut.result())
        except FuturesTimeout:
            _drain()
            raise RunInterrupted(results, f"timed out after {timeout}s") from None
        except KeyboardInterrupt:
            _drain()
            raise RunInterrupted(results, "interrupted") from None
        finally:
            ex.shutdown(wait=True)
    else:
        try:
            for f in files:
                if deadline is not None and time.monotonic() > deadline:
                    raise RunInterrupted(results, f"timed out after {timeout}s")
                _collect(_safe_format(f, options, coordinator, mode))
        except KeyboardInterrupt:
            raise RunInterrupted(results, "interrupted") from None
    return results


__all__ = [
    "FileResult",
    "RunInterrupted",
    "format_file",
    "format_paths",
    "MODE_STDOUT",
    "MODE_WRITE",
    "MODE_CHECK",
    "MODE_LIST_DIFFERENT",
]
