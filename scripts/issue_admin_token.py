"""Issue an admin bearer token for the theme admin API."""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from app.services.auth_service import create_admin_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue an admin JWT signed with JWT_SECRET_KEY.")
    parser.add_argument("--subject", default="admin", help="Value of the sub claim")
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime in minutes")
    args = parser.parse_args()

    print(create_admin_token(args.subject, expires_minutes=args.minutes))


if __name__ == "__main__":
    main()
