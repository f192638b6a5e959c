"""Allow ``python -m gifcap`` to run the command line front end."""

from __future__ import annotations

import sys

from gifcap.cli import main

if __name__ == "__main__":
    sys.exit(main())
