import sys

from showcase_crop.app import main

sys.exit(main())
