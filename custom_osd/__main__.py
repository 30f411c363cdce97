import sys

from custom_osd.launcher import main

if __name__ == "__main__":
    sys.exit(main())
