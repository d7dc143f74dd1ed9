"""
Family Chores Notify — Entry Point.

`python main.py` starts the reminder/digest scheduler;
`python main.py --once reminders` runs a single pass.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from chorenotify.service import main

if __name__ == "__main__":
    main()
