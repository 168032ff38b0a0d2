import sys

from planner_pdf.main import main

sys.exit(main())
