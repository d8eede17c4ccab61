import sys

from intake_bot.runner import main

if __name__ == "__main__":
    sys.exit(main())
