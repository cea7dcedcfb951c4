"""
Drop and recompute every case-study entry in the search projection.

Usage:
    python backend/scripts/rebuild_search_index.py --batch-size 200
"""

import argparse
import asyncio

from app.core.config import get_settings
from app.core.database import async_session, engine
from app.core.logging import setup_logging
from app.services.case_study_service import CaseStudyService


async def run(batch_size: int = 200) -> None:
    settings = get_settings()
    service = CaseStudyService(async_session, settings)
    try:
        total = await service.rebuild_search_index(batch_size=batch_size)
    finally:
        await engine.dispose()
    print(f"Done. Indexed {total} case studies.")


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--batch-size", type=int, default=200)
    args = parser.parse_args()
    setup_logging(debug=get_settings().app_debug)
    asyncio.run(run(batch_size=max(1, args.batch_size)))


if __name__ == "__main__":
    main()
