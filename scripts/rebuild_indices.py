#!/usr/bin/env python3
"""
Rebuild the page index and search-index files outside the Functions host.

Reads the same environment variables as the app (KV_BACKEND, COSMOS_DB_*,
PUBLIC_BLOB_CONNECTION_STRING, ...). With --migrate-urls the stored image
URLs are rewritten to PUBLIC_API_BASE_URL first.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.shared.index_maintenance import auto_refactor_database  # noqa: E402
from src.shared.services import get_services  # noqa: E402
from src.shared.url_migration import migrate_poster_urls  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--migrate-urls", action="store_true", help="rewrite image URLs before rebuilding")
    parser.add_argument("--dry-run", action="store_true", help="with --migrate-urls, report without writing")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    services = get_services()

    if args.migrate_urls:
        report = migrate_poster_urls(
            services.repository,
            services.settings.public_api_base_url,
            services.settings.legacy_api_base_urls,
            dry_run=args.dry_run,
        )
        print(report.model_dump_json(indent=2))
        if args.dry_run:
            return 0

    report = auto_refactor_database(services)
    print(report.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
