#!/usr/bin/env python3
"""Look up anime on Bangumi by title. Useful for finding ids for bangumi.ini.

Usage:
    uv run python scripts/bangumi_lookup.py "进击的巨人"
    uv run python scripts/bangumi_lookup.py "Shingeki no Kyojin" "葬送的芙莉莲"
"""

import argparse
import sys

import httpx

BANGUMI_API_URL = "https://api.bgm.tv"
SUBJECT_TYPE_ANIME = 2


def search_anime(title: str) -> list[dict]:
    with httpx.Client(
        base_url=BANGUMI_API_URL, headers={"User-Agent": "bangumi-meta/0.1.0"}
    ) as client:
        resp = client.post(
            "/v0/search/subjects",
            params={"limit": 5},
            json={"keyword": title, "filter": {"type": [SUBJECT_TYPE_ANIME]}},
        )
        resp.raise_for_status()
        return resp.json()["data"]


def main():
    parser = argparse.ArgumentParser(description="Look up anime on Bangumi by title")
    parser.add_argument("titles", nargs="+", help="Anime titles to search for")
    args = parser.parse_args()

    for title in args.titles:
        print(f"\n{'=' * 60}")
        print(f"Search: {title}")
        print("=" * 60)
        results = search_anime(title)
        if not results:
            print("  No results found")
            continue
        for r in results:
            name = r.get("name") or ""
            name_cn = r.get("name_cn") or ""
            platform = r.get("platform") or "?"
            eps = r.get("eps") or r.get("total_episodes") or "?"
            date = r.get("date") or "?"
            score = (r.get("rating") or {}).get("score") or "?"
            cn_str = f" / {name_cn}" if name_cn and name_cn != name else ""
            print(f"  ID: {r['id']:>8}  {name}{cn_str}")
            print(f"           {platform} | {eps} eps | {date} | score {score}")


if __name__ == "__main__":
    sys.exit(main() or 0)
