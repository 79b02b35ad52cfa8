"""Keep the test run away from the user's persisted settings."""

import os
import tempfile

os.environ.setdefault("SCAN_REDACT_DATA_DIR", tempfile.mkdtemp(prefix="scan-redact-tests-"))
os.environ.pop("SCAN_REDACT_LLM_API_KEY", None)
