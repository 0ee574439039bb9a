"""
Seed the default message templates, automation rules and escalation rules.

Safe to run repeatedly: records that already exist (by id) are left untouched,
including any edits admins made to them.

Usage:
    python scripts/seed_notification_defaults.py [--create-tables]
"""
import argparse
import sys
import os

# Add the parent directory to sys.path to allow imports from src
sys.path.append(os.path.join(os.path.dirname(__file__), '../src'))

from core.database import create_tables, get_db_context
from services.rule_store import RuleStore


def main():
    parser = argparse.ArgumentParser(description="Seed notification engine defaults")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables first (development only; use Alembic in production)",
    )
    args = parser.parse_args()

    print("Seeding notification engine defaults...")
    try:
        if args.create_tables:
            create_tables()

        with get_db_context() as db:
            templates = RuleStore.initialize_default_templates(db)
            rules = RuleStore.initialize_default_rules(db)
            escalations = RuleStore.initialize_default_escalation_rules(db)

        print(f"Created {templates} templates, {rules} automation rules, {escalations} escalation rules.")
    except Exception as e:
        print(f"Error while seeding defaults: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
