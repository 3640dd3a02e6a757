#!/usr/bin/env python3
"""
SignalDesk - Seed Database
Creates the supported chains, base tokens, subscription tiers and the
default token list. Safe to re-run.

Usage:
    python scripts/seed_db.py
"""
import os
import sys

# Add parent directory to path so we can import the app
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from signaldesk import create_app
from signaldesk.seed import seed_catalogue


def main():
    app = create_app()

    with app.app_context():
        created = seed_catalogue()

    print("Seeding complete:")
    for table, count in created.items():
        print(f"  {table}: {count} created")


if __name__ == '__main__':
    main()
