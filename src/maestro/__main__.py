import sys

from maestro.main import main

sys.exit(main())
