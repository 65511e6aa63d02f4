"""Allow ``python -m chaptermark``."""

import sys

from chaptermark.cli import main

if __name__ == "__main__":
    sys.exit(main())
