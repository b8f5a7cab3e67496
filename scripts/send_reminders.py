#!/usr/bin/env python3
"""Send notifications for calendar events that fall due soon (idempotent).

Meant to run once a day from cron or a scheduled job:
  python scripts/send_reminders.py --days-ahead 3
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.customs.config import load_settings
from app.customs.modules.calendar.service import send_due_reminders
from scripts._db_utils import script_session


def main() -> None:
    settings = load_settings()
    parser = argparse.ArgumentParser()
    parser.add_argument("--days-ahead", type=int, default=settings.reminder_days_ahead)
    parser.add_argument("--today", help="Override today's date (YYYY-MM-DD)")
    args = parser.parse_args()

    today = date.fromisoformat(args.today) if args.today else date.today()
    db_url = (os.environ.get("DATABASE_URL") or settings.database_url).strip()

    with script_session(db_url) as s:
        sent = send_due_reminders(s, today, args.days_ahead)

    print(f"Reminders sent for {sent} event(s) (today={today.isoformat()}, days_ahead={args.days_ahead}).")


if __name__ == "__main__":
    main()
