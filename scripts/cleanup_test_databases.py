#!/usr/bin/env python3
"""
Utility script to drop leftover test databases.
Test sessions never drop their database, so run this after a CI job (or
whenever interrupted runs have piled databases up).

Usage:
    python scripts/cleanup_test_databases.py [--dry-run] [--prefix n8n_test_]
"""

import argparse
import asyncio
import logging
import sys

from testdb.config.config_manager import ConfigManager, ConfigValidationError
from testdb.database.bootstrap import BootstrapConnector, ProvisionError
from testdb.database.dialects import bootstrap_family, get_bootstrap_options


async def cleanup_test_databases(config: ConfigManager, prefix: str, dry_run: bool = False) -> int:
    """
    Drop every database whose name starts with ``prefix``.

    Returns:
        Number of databases dropped

    Raises:
        ProvisionError: If listing fails, or once every name was tried when any drop failed
    """
    family = bootstrap_family(config.database_type)
    if family is None:
        print(f"ℹ️  {config.database_type} databases are plain files, nothing to drop on a server.")
        return 0

    connector = BootstrapConnector(get_bootstrap_options(config, family), timeout=config.connection_timeout)

    print(f"🧹 Looking for databases starting with '{prefix}'...")
    names = await connector.list_databases(prefix)
    if not names:
        print("  No test databases found.")
        return 0

    dropped = 0
    failed = []
    for name in names:
        if dry_run:
            print(f"  [DRY RUN] Would drop database: {name}")
            continue
        print(f"  Dropping database: {name}")
        try:
            await connector.drop_database(name)
        except ProvisionError as e:
            print(f"  ❌ Failed to drop {name}: {e}")
            failed.append(name)
            continue
        dropped += 1

    if failed:
        raise ProvisionError(
            f"Dropped {dropped} of {len(names)} databases; failed: {', '.join(failed)}"
        )
    return dropped


def main():
    parser = argparse.ArgumentParser(description="Drop leftover test databases")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be dropped without dropping anything"
    )
    parser.add_argument(
        "--prefix",
        help="Database name prefix to match (defaults to TEST_DB_PREFIX)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = ConfigManager()
        prefix = args.prefix or config.test_db_prefix
        if not prefix:
            print("❌ Refusing to run with an empty prefix")
            sys.exit(1)
        dropped = asyncio.run(cleanup_test_databases(config, prefix, dry_run=args.dry_run))
    except KeyboardInterrupt:
        print("\n\n⚠️  Cleanup interrupted by user")
        sys.exit(1)
    except (ConfigValidationError, ProvisionError) as e:
        print(f"\n❌ {e}")
        sys.exit(1)

    print("\n✅ Cleanup complete!")
    if args.dry_run:
        print("  This was a dry run - no databases were dropped.")
    else:
        print(f"  Databases dropped: {dropped}")


if __name__ == "__main__":
    main()
