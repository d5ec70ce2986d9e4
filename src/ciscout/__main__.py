import sys

from ciscout.cli import main

sys.exit(main())
