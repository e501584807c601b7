"""Allow ``python -m clicksynth``."""

import sys

from . import cli

sys.exit(cli.main())
