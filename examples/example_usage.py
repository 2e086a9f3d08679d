"""Use the service layer directly, without Flask.

Prints today's sales summary and the staff attendance board.
"""

import importlib
from pprint import pprint

from config import get_settings_module

from src.agrivet_admin.agrivet_admin.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    summary = container.daily_sales_service.summary()
    pprint(summary["totals"])

    board = container.attendance_service.daily_board(summary["date"])
    pprint(board["summary"])


if __name__ == "__main__":
    main()
