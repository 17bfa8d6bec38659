#!/usr/bin/env python3
"""Interactive console entry point: python -m gic_banking"""

import sys

from .config import get_config
from .logging_config import setup_logging
from .system import BankingSystem
from .cli import BankingConsole


def main() -> int:
    config = get_config()
    setup_logging(level=config.log_level, log_format=config.log_format, log_file=config.log_file)

    console = BankingConsole(BankingSystem(config=config))
    return console.run()


if __name__ == "__main__":
    sys.exit(main())
