import sys

from fedoraforge.main import main

sys.exit(main())
