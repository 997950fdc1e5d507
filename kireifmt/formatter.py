"""空白/インデント/改行を整えるテキスト整形器。

- 改行コードの統一 (lf/crlf/cr/auto)
- 行頭インデントの正規化 (タブ⇔スペース)
- 行末空白の除去
- 連続空行の圧縮、ファイル先頭/末尾の空行除去
- 末尾改行の付与

冪等: format_text(format_text(s)) == format_text(s)
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Any, Dict, List

END_OF_LINE_CHOICES = ("lf", "crlf", "cr", "auto")
_EOL = {"lf": "\n", "crlf": "\r\n", "cr": "\r"}
_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_LEADING_WS = re.compile(r"^[ \t]*")


@dataclass(frozen=True)
class FormatOptions:
    tab_width: int = 2
    use_tabs: bool = False
    end_of_line: str = "lf"
    trim_trailing_whitespace: bool = True
    insert_final_newline: bool = True
    max_blank_lines: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in OPTION_KEYS.items()}


# 設定ファイルで使うキー名 (camelCase) -> 属性名
OPTION_KEYS = {
    "tabWidth": "tab_width",
    "useTabs": "use_tabs",
    "endOfLine": "end_of_line",
    "trimTrailingWhitespace": "trim_trailing_whitespace",
    "insertFinalNewline": "insert_final_newline",
    "maxBlankLines": "max_blank_lines",
}


def _detect_eol(text: str) -> str:
    m = _LINE_BREAK.search(text)
    return m.group(0) if m else "\n"


def _reindent(line: str, options: FormatOptions) -> str:
    ws = _LEADING_WS.match(line).group(0)  # type: ignore[union-attr]
    if not ws:
        return line
    width = 0
    for ch in ws:
        if ch == "\t":
            width += options.tab_width - (width % options.tab_width)
        else:
            width += 1
    if options.use_tabs:
        indent = "\t" * (width // options.tab_width) + " " * (width % options.tab_width)
    else:
        indent = " " * width
    return indent + line[len(ws):]


def format_text(text: str, options: FormatOptions | None = None) -> str:
    options = options or FormatOptions()
    if not text:
        return text
    eol = _detect_eol(text) if options.end_of_line == "auto" else _EOL[options.end_of_line]
    lines = _LINE_BREAK.split(text)
    had_final_newline = lines[-1] == ""
    if had_final_newline:
        lines.pop()

    out: List[str] = []
    blank_run = 0
    for line in lines:
        if options.trim_trailing_whitespace:
            line = line.rstrip(" \t")
        if not line.strip(" \t"):
            blank_run += 1
            # 先頭の空行と上限を超えた空行は捨てる
            if not out or blank_run > options.max_blank_lines:
                continue
            out.append("" if options.trim_trailing_whitespace else line)
            continue
        blank_run = 0
        out.append(_reindent(line, options))
    while out and not out[-1].strip(" \t"):
        out.pop()
    if not out:
        return ""
    result = eol.join(out)
    if options.insert_final_newline or had_final_newline:
        result += eol
    return result


__all__ = ["FormatOptions", "format_text", "OPTION_KEYS", "END_OF_LINE_CHOICES"]
