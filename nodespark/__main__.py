import sys

from nodespark.main import main

sys.exit(main())
