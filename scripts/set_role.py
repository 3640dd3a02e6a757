#!/usr/bin/env python3
"""
SignalDesk - Set User Role
Grant a profile the user, premium, analyst or admin role.

Usage:
    python scripts/set_role.py user_2abc123 admin
"""
import os
import sys
import argparse

# Add parent directory to path so we can import the app
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from signaldesk import create_app
from signaldesk.models.db_models import UserRole
from signaldesk.services.db_service import DataService


def main():
    parser = argparse.ArgumentParser(description='Set the role on a SignalDesk profile')
    parser.add_argument('clerk_user_id', help='Clerk user id, e.g. user_2abc123')
    parser.add_argument('role', choices=UserRole.ALL)
    args = parser.parse_args()

    app = create_app()

    with app.app_context():
        user = DataService().update_user_role(args.clerk_user_id, args.role)
        if not user:
            print(f"Error: no profile for {args.clerk_user_id}")
            sys.exit(1)

        print(f"{user.clerk_user_id} ({user.email or 'no email'}) is now {user.role}")


if __name__ == '__main__':
    main()
