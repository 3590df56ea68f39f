#!/usr/bin/env python
"""Seed the ranker with every image in a directory.

Each image becomes an item named after its file stem, uploaded through the
configured backend and stored at the baseline rating.

Usage:
    python scripts/seed_items.py ./memes [config.yaml]
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

from elo_ranker.core.config import load_config
from elo_ranker.services.api import ErrorResponse, build_service

load_dotenv()

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


def find_images(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)


async def main() -> None:
    if len(sys.argv) < 2:
        raise SystemExit("Usage: seed_items.py IMAGE_DIR [CONFIG]")

    image_dir = Path(sys.argv[1])
    config = load_config(sys.argv[2] if len(sys.argv) > 2 else None)
    service = build_service(config)

    try:
        for path in find_images(image_dir):
            name = path.stem.replace("_", " ").replace("-", " ").strip()
            result = await service.handle(service.submit_new_item, name, path.read_bytes())
            if isinstance(result, ErrorResponse):
                print(f"skip {path.name}: [{result.error}] {result.message}")
                continue
            print(f"added {result.name} ({result.id})")

        rankings = await service.get_rankings()
        print(f"\n{len(rankings)} items in the ranker")
    finally:
        await service.close()


if __name__ == "__main__":
    asyncio.run(main())
