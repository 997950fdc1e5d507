from __future__ import annotations
"""
キャッシュファイルの中身を確認するためのスクリプト。
- スタンプ (version / strategy / config) とエントリ数を表示
- --entries で各ファイルの指紋も表示

使い方(例):
  python tools/show_cache.py
  python tools/show_cache.py --location path/to/.kireifmt-cache --entries

注意:
- 読めない/壊れたキャッシュは kireifmt 本体では空として扱われます。ここではその旨を表示して終了します。
"""
import argparse
import json
import sys
from pathlib import Path

from kireifmt.cache import CacheKey, default_cache_location


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('--location', help='キャッシュファイル(既定: プロジェクトの既定位置)')
    ap.add_argument('--entries', action='store_true', help='各エントリも表示する')
    args = ap.parse_args()

    loc = Path(args.location) if args.location else default_cache_location()
    if not loc.is_file():
        print(f'No cache file at {loc}')
        return 1
    try:
        data = json.loads(loc.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        print(f'Unreadable cache file {loc}: {e} (treated as empty)')
        return 1
    if not isinstance(data, dict) or not isinstance(data.get('files'), dict):
        print(f'Malformed cache file {loc} (treated as empty)')
        return 1
    print(f'location: {loc}')
    print(f'version:  {data.get("version")}')
    print(f'strategy: {data.get("strategy")}')
    print(f'config:   {data.get("config")}')
    print(f'entries:  {len(data["files"])}')
    if args.entries:
        for path, raw in sorted(data['files'].items()):
            try:
                key = CacheKey.from_dict(raw)
            except (KeyError, TypeError, ValueError):
                print(f'  {path}: <invalid entry>')
                continue
            print(f'  {path}: {key.fingerprint.strategy.value} {key.fingerprint.value}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
