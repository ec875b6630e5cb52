"""Allow ``python -m commitment_challenge``."""

import sys

from .cli import main

sys.exit(main())
