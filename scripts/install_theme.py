"""Install a theme bundle from the command line (same path as the admin API)."""

import argparse
import asyncio
import sys
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from app.core.database import close_db, get_session_factory, init_db
from app.services.errors import ServiceError
from app.services.theme_installer import ThemeInstallError, ThemeInstaller
from app.services.theme_storage import ThemeStorage, get_theme_storage


async def install_theme(args: argparse.Namespace) -> int:
    await init_db()
    try:
        session_factory = get_session_factory()
        async with session_factory() as session:
            return await run_command(args, session, get_theme_storage())
    finally:
        await close_db()


async def run_command(args: argparse.Namespace, session: AsyncSession, storage: ThemeStorage) -> int:
    """Run the requested action and return the process exit code."""
    installer = ThemeInstaller(session, storage=storage)

    if args.resync:
        try:
            record = await installer.resync_record()
        except ServiceError as e:
            print(f"Resync failed: {e}", file=sys.stderr)
            return 1
        print(f"Record set to {record.current_theme_id}@{record.current_theme_version}")
        return 0

    if args.bootstrap:
        outcome = await installer.bootstrap_default_theme()
        print(f"Bootstrap: {outcome.value}")
        return 0

    try:
        result = await installer.install(args.theme_id, args.version, args.url)
    except ThemeInstallError as e:
        print(f"Install failed: {e}", file=sys.stderr)
        return 1

    print(result.message)
    if not result.record_saved:
        print("Warning: theme record not saved, run with --resync", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Install or reconcile the live theme.")
    parser.add_argument("--theme-id", help="Theme identifier to record")
    parser.add_argument("--version", help="Theme version to record")
    parser.add_argument("--url", help="URL of the theme zip archive")
    parser.add_argument("--resync", action="store_true", help="Rewrite the record from the live bundle")
    parser.add_argument("--bootstrap", action="store_true", help="Install the default catalog theme")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if not (args.resync or args.bootstrap) and not (args.theme_id and args.version and args.url):
        parser.error("--theme-id, --version and --url are required to install")

    sys.exit(asyncio.run(install_theme(args)))


if __name__ == "__main__":
    main()
