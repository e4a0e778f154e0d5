"""Copy every game from one catalog backend into another.

Typical use is moving the legacy ``games.json`` flat file into SQLite or a
hosted PostgreSQL database::

    python migrate_to_db.py json://games.json postgresql://user:pw@host/games
"""

import argparse
import logging
import sys

from catalog.store import build_store

logger = logging.getLogger("migrate_to_db")


def migrate(source_dsn, target_dsn):
    """Copy games from ``source_dsn`` to ``target_dsn``; return the number copied.

    Entries keep their flags and timestamps but receive fresh ids from the
    target. Steam games already present in the target are skipped.
    """

    source = build_store(source_dsn)
    target = build_store(target_dsn)
    target.init_schema()
    copied = 0
    try:
        # Oldest first so the target assigns ids in the original order.
        for entry in reversed(source.list_games()):
            if entry.steam_id and target.find_by_steam_id(entry.steam_id):
                logger.info("Skipping %r: steam app %s already migrated", entry.title, entry.steam_id)
                continue
            target.add_game(entry.with_id(None))
            copied += 1
    finally:
        source.close()
        target.close()
    return copied


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("source", help="DSN of the catalog to read (json://, sqlite:///, postgresql://)")
    parser.add_argument("target", help="DSN of the catalog to write")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    copied = migrate(args.source, args.target)
    print(f"Migrated {copied} game(s) to {args.target.split('://', 1)[0]} catalog.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
