import sys

from steel_schedule.cli import main

sys.exit(main())
