import sys

from lecture_reminders.daemon import main

sys.exit(main())
