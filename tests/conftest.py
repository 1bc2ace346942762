import os
import tempfile

os.environ.setdefault("TELEINFO_BASE_DIR", tempfile.mkdtemp(prefix="teleinfo-tests-"))
