"""
Runtime defaults, overridable through environment variables.

    ENGAGEMENT_LOCK_TIMEOUT    seconds to wait for a post's exclusive section before
                               giving up with 'ConflictError' (default 5.0)
    ENGAGEMENT_HISTORY_LIMIT   default page size for a user's interaction history (default 50)
    ENGAGEMENT_SWEEP_INTERVAL  seconds between background expiry sweeps (default 60.0)
"""

import os

LOCK_TIMEOUT_SECONDS = float(os.getenv("ENGAGEMENT_LOCK_TIMEOUT", "5.0"))
HISTORY_LIMIT = int(os.getenv("ENGAGEMENT_HISTORY_LIMIT", "50"))
SWEEP_INTERVAL_SECONDS = float(os.getenv("ENGAGEMENT_SWEEP_INTERVAL", "60.0"))
