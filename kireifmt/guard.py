"""キャッシュ関連フラグの組み合わせ検証。ファイルやストアに触る前に呼ぶ。"""
from __future__ import annotations

from .fingerprint import Strategy


class CacheArgumentError(ValueError):
    pass


def validate_cache_args(cache: bool, cache_strategy: str | None, stdin: bool) -> Strategy | None:
    """フラグを検証し、キャッシュ有効時は使用する Strategy を返す (既定: content)。"""
    if cache_strategy is not None and cache_strategy not in {s.value for s in Strategy}:
        raise CacheArgumentError(
            'Invalid --cache-strategy value. Expected "content" or "metadata", '
            f'but received "{cache_strategy}".'
        )
    if cache and stdin:
        raise CacheArgumentError("`--cache` cannot be used with stdin.")
    if cache_strategy is not None and not cache:
        raise CacheArgumentError("`--cache-strategy` cannot be used without `--cache`.")
    if not cache:
        return None
    return Strategy.parse(cache_strategy or Strategy.CONTENT.value)


__all__ = ["CacheArgumentError", "validate_cache_args"]
