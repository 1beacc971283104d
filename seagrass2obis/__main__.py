import sys

from seagrass2obis.main import main

sys.exit(main())
