#!/usr/bin/env python
"""Django management entry point for the agreements backend."""

import logging
import os
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

# backend/.env first, then whatever .env sits nearest the working directory.
BASE_DIR = Path(__file__).resolve().parent
ENV_FILE = BASE_DIR / ".env"
if ENV_FILE.exists():
    load_dotenv(dotenv_path=ENV_FILE, override=True)
else:
    discovered = find_dotenv(filename=".env", usecwd=True)
    if discovered:
        load_dotenv(discovered, override=True)


def main():
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")
    try:
        from django.core.management import execute_from_command_line
    except ImportError:
        logger.error("Django is not importable; is the virtualenv active?")
        raise
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
