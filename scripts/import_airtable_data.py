"""Migrate every Airtable table into the school_ops database.

Usage:
    python scripts/import_airtable_data.py            # incremental, skips already-imported rows
    python scripts/import_airtable_data.py --clean    # wipe imported tables first (5s warning)
    python scripts/import_airtable_data.py --force-clean
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from school_ops.airtable.client import AirtableClient
from school_ops.airtable.importer import run_import
from school_ops.airtable.settings import load_airtable_settings
from school_ops.db import Base, SessionLocal, engine
from school_ops.services.language_level_service import seed_language_levels


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('school_ops.import')


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Import Airtable data into the school_ops database.')
    parser.add_argument('-c', '--clean', action='store_true', help='delete existing imported data before importing')
    parser.add_argument('-f', '--force-clean', action='store_true', help='like --clean without the 5 second warning')
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    airtable = load_airtable_settings()

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_language_levels(db)
        with AirtableClient(airtable.airtable_api_key, airtable.airtable_base_id) as client:
            stats = run_import(db, client, clean=args.clean, force_clean=args.force_clean)
    except Exception:
        logger.exception('import_failed')
        return 1
    finally:
        db.close()

    logger.info('import_complete imported=%s skipped=%s errors=%s', stats.total_imported, stats.total_skipped, len(stats.errors))
    return 0


if __name__ == '__main__':
    sys.exit(main())
