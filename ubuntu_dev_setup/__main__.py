import sys

from ubuntu_dev_setup.cli import main

sys.exit(main())
