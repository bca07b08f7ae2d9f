"""Allow ``python -m partspider``."""

import sys

from partspider.cli import main

sys.exit(main())
