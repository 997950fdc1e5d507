"""kireifmt
ソースファイルの空白・インデント・改行を整える一括整形ツール。

主な提供機能:
- 言語に依存しない空白/インデント/改行コードの整形
- 変更検出キャッシュ (metadata: mtime+サイズ / content: 内容ハッシュ)
- 設定ファイル (TOML/YAML/JSON) と CLI 引数によるオプション指定
- CLI インターフェース

キャッシュは整形オプション全体とバージョンに紐づき、どちらかが変われば全ファイルを再整形する。
"""
__version__ = "0.2.0"

from .formatter import FormatOptions, format_text
from .runner import format_file, format_paths

__all__ = [
    "FormatOptions",
    "format_text",
    "format_file",
    "format_paths",
]
