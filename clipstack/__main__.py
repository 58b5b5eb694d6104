import sys

from clipstack.main import main

sys.exit(main())
