#!/usr/bin/env python3
"""
Database management utility for the PearlCard fare tables.

Usage:
    python manage_db.py init        - Initialize database with the standard fare table
    python manage_db.py show        - Show all fare rules and caps
    python manage_db.py check       - Check the fare table covers every zone pair
    python manage_db.py update      - Create or change a fare rule
    python manage_db.py precedence  - Choose how caps escalate (cap_value or fixed)
    python manage_db.py limit       - Change the number of journeys accepted per request
    python manage_db.py reset       - Reset to the standard fare table
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from farecap.database import DatabaseManager
from farecap.exceptions import ConfigurationMissingError


def init_database():
    """Initialize database with the standard fare table."""
    print("Initializing database...")
    db = DatabaseManager()
    db.init_default_fare_rules()
    print("Database initialized successfully!")
    show_rules()


def show_rules():
    """Display all fare rules."""
    db = DatabaseManager()
    rules = db.get_all_fare_rules()

    print("\n" + "="*62)
    print("CURRENT FARE RULES IN LOCAL DATASTORE (pence)")
    print("="*62)
    print(f"{'From':<6} {'To':<6} {'Peak':>8} {'Off-peak':>10} {'Daily cap':>11} {'Weekly cap':>12}")
    print("-"*62)

    for (from_zone, to_zone), rule in sorted(rules.items()):
        print(
            f"{from_zone:<6} {to_zone:<6} {rule.peak_fare:>8} {rule.off_peak_fare:>10} "
            f"{rule.daily_cap:>11} {rule.weekly_cap:>12}"
        )

    print("-"*62)
    print(f"Total rules: {len(rules)}")

    print(f"\nMax journeys per request: {db.get_config_value('max_journeys_per_request')}")
    print(f"Cap precedence: {db.get_config_value('cap_precedence')}")
    print("="*62)


def check_rules():
    """Load the stored table the way the API does and report gaps."""
    db = DatabaseManager()
    try:
        config = db.get_fare_config()
    except ConfigurationMissingError as e:
        print(f"✗ Fare table is incomplete: {e}")
        sys.exit(1)
    print(f"✓ Fare table covers zones {config.zones()}")


def _read_amount(label: str, current):
    prompt = f"  {label} (pence)" + (f" [{current}]" if current is not None else "") + ": "
    raw = input(prompt).strip()
    if not raw:
        return None
    amount = int(raw)
    if amount < 0:
        raise ValueError(f"{label} must not be negative")
    return amount


def update_rule():
    """Interactive fare rule update."""
    print("\nUPDATE FARE RULE")
    print("-"*30)

    try:
        db = DatabaseManager()
        print(f"Available zones: {db.get_available_zones()}")

        from_zone = int(input("Enter from zone: "))
        to_zone = int(input("Enter to zone: "))
        if from_zone < 1 or to_zone < 1:
            print("Zones must be positive numbers!")
            return

        current = db.get_fare_rule(from_zone, to_zone)
        if current:
            print("Press enter to keep the current amount.")
        else:
            print("No existing rule for this route; all four amounts are required.")

        db.update_fare_rule(
            from_zone,
            to_zone,
            peak_fare=_read_amount("Peak fare", current and current.peak_fare),
            off_peak_fare=_read_amount("Off-peak fare", current and current.off_peak_fare),
            daily_cap=_read_amount("Daily cap", current and current.daily_cap),
            weekly_cap=_read_amount("Weekly cap", current and current.weekly_cap),
        )
        print(f"✓ Updated rule for Zone {from_zone} → Zone {to_zone}")

    except ValueError as e:
        print(f"Invalid input: {e}")


def set_precedence():
    """Choose how caps escalate between zone combinations."""
    db = DatabaseManager()
    print(f"Current cap precedence: {db.get_config_value('cap_precedence')}")
    choice = input("Enter cap_value or fixed: ").strip()
    if choice not in ("cap_value", "fixed"):
        print("Precedence must be 'cap_value' or 'fixed'.")
        return
    db.set_config_value("cap_precedence", choice)
    print(f"✓ Cap precedence set to {choice}")


def set_journey_limit():
    """Change the number of journeys accepted in one request."""
    db = DatabaseManager()
    print(f"Current limit: {db.get_config_value('max_journeys_per_request')}")
    try:
        limit = int(input("Enter new limit: ").strip())
    except ValueError:
        print("Limit must be a whole number.")
        return
    if limit < 1:
        print("Limit must be at least 1.")
        return
    db.set_config_value("max_journeys_per_request", str(limit))
    print(f"✓ Journey limit set to {limit}")


def reset_database():
    """Reset database to the standard fare table."""
    confirm = input("Are you sure you want to reset all fare rules to defaults? (yes/no): ")

    if confirm.lower() == 'yes':
        db = DatabaseManager()
        db_path = db.engine.url.database
        db.engine.dispose()
        if db.engine.url.get_backend_name() == "sqlite" and db_path and os.path.exists(db_path):
            os.remove(db_path)
            print("Database deleted.")

        init_database()
        print("Database reset to defaults!")
    else:
        print("Reset cancelled.")


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print(__doc__)
        return

    command = sys.argv[1].lower()

    commands = {
        'init': init_database,
        'show': show_rules,
        'check': check_rules,
        'update': update_rule,
        'precedence': set_precedence,
        'limit': set_journey_limit,
        'reset': reset_database
    }

    if command in commands:
        commands[command]()
    else:
        print(f"Unknown command: {command}")
        print(__doc__)


if __name__ == "__main__":
    main()
