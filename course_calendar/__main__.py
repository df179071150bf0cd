import sys

from course_calendar.cli import main

if __name__ == "__main__":
    sys.exit(main())
