import sys

from razor_localizer.cli import main

sys.exit(main())
