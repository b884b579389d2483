"""Allow running as ``python -m whawty_admin``."""

import sys

from .cli import main

sys.exit(main())
