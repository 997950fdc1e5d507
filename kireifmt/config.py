"""設定ファイルの読込と整形オプションの解決。

優先度: 組込みの既定値 < 設定ファイル < CLI 引数。

設定ファイル:
- TOML: pyproject.toml の [tool.kireifmt] 、または .kireifmtrc.toml のトップレベル
- YAML: .kireifmtrc.yaml / .kireifmtrc.yml (要 PyYAML)
- JSON: .kireifmtrc.json

YAML 例:
---
tabWidth: 4
useTabs: false
endOfLine: lf
"""
from __future__ import annotations
import hashlib
import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Mapping

try:
    import tomllib  # Python 3.11+
except Exception:  # pragma: no cover
    tomllib = None  # type: ignore

try:
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None

from .formatter import FormatOptions, OPTION_KEYS, END_OF_LINE_CHOICES

CONFIG_FILENAMES = (
    ".kireifmtrc.toml",
    ".kireifmtrc.yaml",
    ".kireifmtrc.yml",
    ".kireifmtrc.json",
    "pyproject.toml",
)


class ConfigError(ValueError):
    """設定値/設定ファイルの誤り。実行全体を中断する。"""


def _read_document(p: Path) -> Any:
    try:
        raw = p.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e
    suffix = p.suffix.lower()
    try:
        if suffix == ".toml":
            if tomllib is None:
                raise ConfigError("TOML config requires Python 3.11+ (tomllib)")
            return tomllib.loads(raw.decode("utf-8"))
        text = raw.decode("utf-8-sig")
        if suffix in {".yaml", ".yml"}:
            if yaml is None:
                raise ConfigError("PyYAMLがインストールされていないためYAMLは読み込めません。'pip install PyYAML' を実行してください")
            return yaml.safe_load(text)
        return json.loads(text)
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f"Invalid config file {p}: {e}") from e


def load_config_file(path: str | Path) -> Dict[str, Any]:
    """設定ファイルを読み、オプションの辞書(camelCaseキー)を返す。"""
    p = Path(path)
    data = _read_document(p)
    if p.suffix.lower() == ".toml" and isinstance(data, dict) and ("tool" in data or p.name == "pyproject.toml"):
        tool = data.get("tool", {}) if isinstance(data.get("tool"), dict) else {}
        data = tool.get("kireifmt", {})
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {p}: expected a table/mapping at top level")
    return data


def _has_tool_table(p: Path) -> bool:
    try:
        data = _read_document(p)
    except ConfigError:
        return False
    tool = data.get("tool") if isinstance(data, dict) else None
    return isinstance(tool, dict) and "kireifmt" in tool


def find_config_file(start: str | Path) -> Path | None:
    """start から親方向に設定ファイルを探す。pyproject.toml は [tool.kireifmt] がある場合のみ採用。"""
    start = Path(start).resolve()
    for d in (start, *start.parents):
        for name in CONFIG_FILENAMES:
            candidate = d / name
            if not candidate.is_file():
                continue
            if name == "pyproject.toml" and not _has_tool_table(candidate):
                continue
            return candidate
    return None


def _coerce(key: str, value: Any) -> Any:
    attr = OPTION_KEYS[key]
    if attr in ("tab_width", "max_blank_lines"):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Invalid {key} value. Expected an integer, but received {value!r}.")
        if value < (1 if attr == "tab_width" else 0):
            raise ConfigError(f"Invalid {key} value: {value}.")
        return value
    if attr == "end_of_line":
        if value not in END_OF_LINE_CHOICES:
            choices = ", ".join(f'"{c}"' for c in END_OF_LINE_CHOICES)
            raise ConfigError(f"Invalid {key} value. Expected {choices}, but received {value!r}.")
        return value
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid {key} value. Expected true or false, but received {value!r}.")
    return value


def resolve_options(
    file_options: Mapping[str, Any] | None = None,
    cli_options: Mapping[str, Any] | None = None,
    warn=None,
) -> FormatOptions:
    """既定値に設定ファイル、CLI 引数の順で上書きした FormatOptions を返す。

    cli_options は属性名(snake_case)キーで、値 None は「未指定」。
    未知のキーは warn(message) で通知して無視する。
    """
    options = FormatOptions()
    updates: Dict[str, Any] = {}
    for key, value in (file_options or {}).items():
        if key not in OPTION_KEYS:
            if warn is not None:
                warn(f"Ignored unknown option {key}.")
            continue
        updates[OPTION_KEYS[key]] = _coerce(key, value)
    attr_to_key = {attr: key for key, attr in OPTION_KEYS.items()}
    for attr, value in (cli_options or {}).items():
        if value is None:
            continue
        updates[attr] = _coerce(attr_to_key[attr], value)
    return replace(options, **updates)


def config_fingerprint(options: FormatOptions) -> str:
    """解決済みオプション全体の決定的なダイジェスト。"""
    canonical = json.dumps(options.to_dict(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


__all__ = [
    "ConfigError",
    "load_config_file",
    "find_config_file",
    "resolve_options",
    "config_fingerprint",
    "CONFIG_FILENAMES",
]
