# SPDX-License-Identifier: MIT

from timetally.initialize import initialize
from timetally.terminal.app import run


def main() -> None:
    initialize()
    run()


if __name__ == "__main__":
    main()
