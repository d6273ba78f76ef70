"""Allow running as ``python -m claude_export``."""

import sys

from .cli import main

sys.exit(main())
