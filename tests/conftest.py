import os
import tempfile

# wt.common.setup builds its data folders at import time; keep test runs out of the real ~/.weektime.
os.environ.setdefault("WEEKTIME_HOME", tempfile.mkdtemp(prefix="weektime-tests-"))
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
