# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Maintenance script – deletes refresh-token rows that can never be used again
(expired or revoked).

Expiry is already enforced when a token is read; this only keeps the table
from growing.  Schedule it from cron, e.g. nightly:
    python bin/purge_refresh_tokens.py
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from auth.ledger import RefreshTokenLedger                # noqa: E402
from core.config import settings                          # noqa: E402
from core.logger import logger                            # noqa: E402
from database import create_session_factory, transaction  # noqa: E402
# refresh_tokens.user_id references users.id
import models.user                                        # noqa: F401, E402


def purge(session_factory=None) -> int:
    session_factory = session_factory or create_session_factory(settings.database_url)
    db = session_factory()
    try:
        with transaction(db):
            removed = RefreshTokenLedger(db).purge_expired()
    finally:
        db.close()

    logger.info("Purged %d refresh token rows", removed)
    print(f"[purge_refresh_tokens] Removed {removed} expired or revoked token(s).")
    return removed


if __name__ == "__main__":
    purge()
