"""
Reindex Script: Rebuild cache and search projections from Postgres
Reloads every question of one or all modules and republishes it to Redis and Qdrant.
"""

import argparse
import sys

from tqdm import tqdm

from fluency.content import MODULES
from fluency.database import crud
from fluency.dependencies import build_services
from fluency.errors import AggregateLoadError


def reindex_module(services, module: str, dry_run: bool = False) -> tuple:
    """
    Republish every question of a module.

    Returns:
        (synced, failed) counts
    """
    db = services.session_factory()
    try:
        if dry_run:
            print(f"\n{module}: {crud.count_module_questions(db, module)} questions would be reindexed")
            return 0, 0

        questions = crud.get_module_questions(db, module)
        print(f"\n{module}: {len(questions)} questions")
        if not questions:
            return 0, 0

        synced = failed = 0
        for question in tqdm(questions, desc=module, unit="q"):
            try:
                result = services.updator.update_cache_and_search(db, question)
            except AggregateLoadError as e:
                tqdm.write(f"  ✗ {question.id}: {e.message}")
                failed += 1
                continue
            if result.ok:
                synced += 1
            else:
                tqdm.write(f"  ⚠ {question.id}: {result.describe()}")
                failed += 1
        return synced, failed
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild cached and indexed question details")
    parser.add_argument("--module", choices=sorted(MODULES), help="Only reindex this module")
    parser.add_argument("--dry-run", "-d", action="store_true", help="Count questions without writing")
    args = parser.parse_args(argv)

    modules = [args.module] if args.module else list(MODULES)

    print("=" * 70)
    print("REINDEX: Cache + Search Projections")
    print("=" * 70)
    if args.dry_run:
        print("\n[DRY RUN MODE] - No changes will be made")

    services = build_services()
    total_synced = total_failed = 0
    try:
        for module in modules:
            synced, failed = reindex_module(services, module, dry_run=args.dry_run)
            total_synced += synced
            total_failed += failed
    finally:
        services.close()

    print("\n" + "=" * 70)
    print("REINDEX COMPLETE")
    print("=" * 70)
    print(f"✓ Synchronized: {total_synced} questions")
    if total_failed:
        print(f"⚠ Not fully synchronized: {total_failed} questions")
    return 1 if total_failed else 0


if __name__ == "__main__":
    sys.exit(main())
