from __future__ import annotations
import argparse
import os
import sys
from pathlib import Path
from typing import List

from . import __version__
from .cache import default_cache_location
from .config import ConfigError, config_fingerprint, find_config_file, load_config_file, resolve_options
from .coordinator import CacheCoordinator
from .formatter import END_OF_LINE_CHOICES, FormatOptions, format_text
from .guard import CacheArgumentError, validate_cache_args
from .runner import (
    FileResult,
    RunInterrupted,
    format_paths,
    MODE_CHECK,
    MODE_LIST_DIFFERENT,
    MODE_STDOUT,
    MODE_WRITE,
)

CACHED_SUFFIX = " (cached)"


def _warn(message: str) -> None:
    print(f"[warn] {message}", file=sys.stderr)


def _error(message: str) -> None:
    print(f"[error] {message}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="kireifmt",
        description="ソースファイルの空白・インデント・改行を整形します (変更のないファイルはキャッシュで省略)"
    )
    p.add_argument("paths", nargs="*", help="整形するファイル/ディレクトリ")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("-w", "--write", action="store_true", help="整形結果でファイルを上書きする")
    mode.add_argument("-c", "--check", action="store_true", help="未整形のファイルがあれば警告し終了コード1")
    mode.add_argument("-l", "--list-different", action="store_true", help="未整形のファイルのパスだけを出力し終了コード1")
    # キャッシュ
    p.add_argument("--cache", action="store_true", help="整形済みで変更のないファイルを省略する")
    # choices は使わない: 不正値のメッセージを固定文言で出すため
    p.add_argument("--cache-strategy", metavar="{content,metadata}", help="変更検出の方式 (既定: content)")
    p.add_argument("--cache-location", metavar="PATH", help="キャッシュファイルの場所 (既定: node_modules/.cache/kireifmt/.kireifmt-cache)")
    p.add_argument("--stdin-filepath", metavar="PATH", help="標準入力の内容を整形して標準出力へ (PATH は表示用)")
    # 設定
    p.add_argument("--config", help="設定ファイル(TOML/YAML/JSON)を読み込み、既定値を上書き")
    p.add_argument("--no-config", action="store_true", help="設定ファイルを探さない")
    p.add_argument("--tab-width", type=int, default=None, help="タブ幅 (既定: 2)")
    p.add_argument("--use-tabs", dest="use_tabs", action="store_true", default=None, help="インデントにタブを使う")
    p.add_argument("--no-use-tabs", dest="use_tabs", action="store_false", help="インデントにスペースを使う")
    p.add_argument("--end-of-line", choices=END_OF_LINE_CHOICES, default=None, help="改行コード (既定: lf)")
    p.add_argument("--trim-trailing-whitespace", dest="trim_trailing_whitespace", action="store_true", default=None, help="行末の空白を除去する (既定で有効)")
    p.add_argument("--no-trim-trailing-whitespace", dest="trim_trailing_whitespace", action="store_false", help="行末の空白を残す")
    p.add_argument("--insert-final-newline", dest="insert_final_newline", action="store_true", default=None, help="末尾に改行を付ける (既定で有効)")
    p.add_argument("--no-insert-final-newline", dest="insert_final_newline", action="store_false", help="末尾に改行を付け足さない")
    p.add_argument("--max-blank-lines", type=int, default=None, help="連続する空行の上限 (既定: 1)")
    # 実行
    p.add_argument("-j", "--jobs", type=int, default=1, help="並列実行のワーカー数")
    p.add_argument("--timeout", type=float, default=None, metavar="SECONDS", help="実行全体の制限時間。超えたら未処理のファイルを打ち切る")
    return p


def _cli_options(args: argparse.Namespace) -> dict:
    return {
        "tab_width": args.tab_width,
        "use_tabs": args.use_tabs,
        "end_of_line": args.end_of_line,
        "trim_trailing_whitespace": args.trim_trailing_whitespace,
        "insert_final_newline": args.insert_final_newline,
        "max_blank_lines": args.max_blank_lines,
    }


def _resolve(args: argparse.Namespace) -> FormatOptions:
    # 設定ファイル読込。CLI引数が最優先だが、未指定の項目は設定で補完。
    file_options = {}
    if not args.no_config:
        cfg_path = Path(args.config) if args.config else find_config_file(Path.cwd())
        if cfg_path is not None:
            file_options = load_config_file(cfg_path)
    return resolve_options(file_options, _cli_options(args), warn=_warn)


def _display(path: Path) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        # Windows で別ドライブ
        return str(path)


def _format_stdin(args: argparse.Namespace, options: FormatOptions) -> int:
    text = sys.stdin.read()
    formatted = format_text(text, options)
    if args.check or args.list_different:
        if formatted != text:
            if args.check:
                _warn(args.stdin_filepath)
            else:
                print(args.stdin_filepath)
            return 1
        return 0
    sys.stdout.write(formatted)
    return 0


def main(argv: List[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    stdin = args.stdin_filepath is not None
    try:
        strategy = validate_cache_args(args.cache, args.cache_strategy, stdin)
        options = _resolve(args)
    except (CacheArgumentError, ConfigError) as e:
        _error(str(e))
        return 2

    if stdin:
        return _format_stdin(args, options)
    if not args.paths:
        _error("No files specified. Pass file or directory paths, or use --stdin-filepath.")
        return 2

    # キャッシュの準備 (無効時は既存ファイルを削除)
    location = Path(args.cache_location).resolve() if args.cache_location else default_cache_location()
    try:
        coordinator = CacheCoordinator.open(
            args.cache, location, strategy, config_fingerprint(options), __version__
        )
    except OSError as e:
        _warn(f"Failed to remove cache file {location}: {e}")
        coordinator = CacheCoordinator(location, None)

    exit_code = 0
    for raw in args.paths:
        if not os.path.exists(raw):
            _error(f'No files matching the pattern were found: "{raw}".')
            exit_code = 2

    if args.write:
        mode = MODE_WRITE
    elif args.check:
        mode = MODE_CHECK
        print("Checking formatting...")
    elif args.list_different:
        mode = MODE_LIST_DIFFERENT
    else:
        mode = MODE_STDOUT

    def _report(res: FileResult) -> None:
        disp = _display(res.path)
        if res.error is not None:
            _error(f"{disp}: {res.error}")
        elif mode == MODE_WRITE:
            print(f"{disp} {res.elapsed_ms:.0f}ms" + (CACHED_SUFFIX if res.cached else ""))
        elif mode == MODE_CHECK and res.changed:
            _warn(disp)
        elif mode == MODE_LIST_DIFFERENT and res.changed:
            print(disp)
        elif mode == MODE_STDOUT and res.output is not None:
            sys.stdout.write(res.output)

    try:
        results = format_paths(
            args.paths,
            options,
            coordinator,
            mode=mode,
            jobs=args.jobs,
            timeout=args.timeout,
            on_result=_report,
        )
    except RunInterrupted as e:
        _warn(f"Run {e.reason}; processed {len(e.results)} file(s).")
        results = e.results
        exit_code = 2

    # 完了したファイルの分だけ、1回だけ書き出す
    try:
        coordinator.close()
    except OSError as e:
        _warn(f"Failed to write cache file {location}: {e}")

    if any(r.error is not None for r in results):
        exit_code = 2
    unformatted = sum(1 for r in results if r.changed)
    if mode == MODE_CHECK:
        if unformatted:
            _warn(f"Code style issues found in {unformatted} file(s). Run kireifmt --write to fix.")
        elif exit_code == 0:
            print("All matched files use kireifmt code style!")
    if mode in (MODE_CHECK, MODE_LIST_DIFFERENT) and unformatted and exit_code == 0:
        exit_code = 1
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
