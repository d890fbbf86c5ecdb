import sys

from buildwine.cli import main

sys.exit(main())
