#!/usr/bin/env python3
"""
Issue a bearer token for local development.

Login lives in a separate service; this signs a token with the same
JWT_SECRET so the API can be exercised from curl or the docs page.

Usage:
    python scripts/issue_token.py --user-id u1 --email owner@example.com \
        --user-type gym_owner --gym-id gym-1

Requires:
    - .env file with JWT_SECRET
"""

import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.config.settings import get_settings
from src.core.access import Principal, UserType
from src.infrastructure.auth.tokens import TokenConfig, create_access_token


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Issue a development access token')
    parser.add_argument('--user-id', required=True, help='Token subject')
    parser.add_argument('--email', required=True)
    parser.add_argument(
        '--user-type',
        default=UserType.GYM_OWNER.value,
        choices=[t.value for t in UserType],
    )
    parser.add_argument('--gym-id', default=None, help='Omit for admins')
    parser.add_argument('--expires-minutes', type=int, default=None)
    args = parser.parse_args()

    settings = get_settings()
    if not settings.jwt_secret:
        print("ERROR: JWT_SECRET is not set")
        sys.exit(1)

    config = TokenConfig(
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_minutes=args.expires_minutes or settings.jwt_expires_minutes,
    )
    principal = Principal(
        user_id=args.user_id,
        email=args.email,
        user_type=UserType(args.user_type),
        gym_id=args.gym_id,
    )

    print(create_access_token(principal, config))


if __name__ == '__main__':
    main()
