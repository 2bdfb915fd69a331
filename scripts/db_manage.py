#!/usr/bin/env python
"""
TimeAudit - Local Cache Management CLI

Usage:
    python -m scripts.db_manage check       # Test local cache connection
    python -m scripts.db_manage migrate     # Run pending migrations
    python -m scripts.db_manage current     # Show current migration version
    python -m scripts.db_manage history     # Show migration history
    python -m scripts.db_manage reset       # Drop all and recreate (dev only)
    python -m scripts.db_manage show        # Show records per cache bucket
    python -m scripts.db_manage help        # Show this help
"""

import sys

from alembic import command
from alembic.config import Config

from timeaudit.config import get_settings
from timeaudit.database import SessionLocal, check_connection
from timeaudit.services.persistence import LocalCache


settings = get_settings()


def alembic_config() -> Config:
    return Config("alembic.ini")


def cmd_check():
    """Test database connection."""
    print(f"Connecting to: {settings.database_url}")
    try:
        check_connection()
        print("Connection successful!")
        return True
    except Exception as e:
        print(f"Connection failed: {e}")
        return False


def cmd_migrate():
    """Run pending Alembic migrations."""
    print("Running migrations...")
    command.upgrade(alembic_config(), "head")
    print("Migrations complete!")
    return True


def cmd_current():
    """Show current migration version."""
    command.current(alembic_config())
    return True


def cmd_history():
    """Show migration history."""
    command.history(alembic_config())
    return True


def cmd_reset():
    """Drop all tables and recreate with migrations."""
    if not settings.debug:
        print("ERROR: reset is only available in debug mode")
        return False

    confirm = input("This will DELETE THE LOCAL CACHE. Type 'yes' to confirm: ")
    if confirm.lower() != "yes":
        print("Aborted")
        return False

    cfg = alembic_config()

    print("Rolling back all migrations...")
    try:
        command.downgrade(cfg, "base")
    except Exception as e:
        print(f"Rollback failed (maybe no tables exist): {e}")

    print("Running all migrations...")
    command.upgrade(cfg, "head")

    print("Reset complete!")
    return True


def cmd_show():
    """Show how many records each cache bucket holds."""
    sizes = LocalCache(SessionLocal).bucket_sizes()
    width = max(len(kind) for kind in sizes)
    for kind, count in sizes.items():
        print(f"{kind:<{width}}  {count}")
    return True


def cmd_help():
    """Show help."""
    print(__doc__)
    return True


COMMANDS = {
    "check": cmd_check,
    "migrate": cmd_migrate,
    "current": cmd_current,
    "history": cmd_history,
    "reset": cmd_reset,
    "show": cmd_show,
    "help": cmd_help,
}


def main():
    if len(sys.argv) < 2:
        cmd_help()
        sys.exit(1)

    name = sys.argv[1].lower()

    if name not in COMMANDS:
        print(f"Unknown command: {name}")
        cmd_help()
        sys.exit(1)

    success = COMMANDS[name]()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
