"""Allow ``python -m route_loader <path>``."""

import sys

from route_loader import cli

sys.exit(cli.main())
