"""Entry point for ``python -m quickstart``."""

import sys

from quickstart.cli import main

sys.exit(main())
