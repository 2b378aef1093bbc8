import sys

from ma60_monitor.cli import main

sys.exit(main())
