"""Allow ``python -m vaultmaint``."""

import sys

from .cli import main

sys.exit(main())
