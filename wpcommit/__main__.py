"""Allow ``python -m wpcommit``."""

from wpcommit.cli import main

raise SystemExit(main())
