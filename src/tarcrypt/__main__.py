import sys

from tarcrypt.main import main

sys.exit(main())
