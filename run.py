from __future__ import annotations

import logging
import os
import signal
import sys
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from sampling_qc import create_app, shutdown  # noqa: E402

logger = logging.getLogger("sampling_qc")


def _is_debug_enabled(flag: Optional[str]) -> bool:
    if not flag:
        return False
    return flag.lower() in {"1", "true", "yes", "on"}


def main() -> None:
    try:
        app = create_app()
    except Exception:
        logger.exception("Application failed to start")
        sys.exit(1)

    def handle_sigterm(signum, _frame) -> None:
        logger.info("Received signal %s", signum)
        shutdown(app)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_sigterm)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    debug = _is_debug_enabled(os.getenv("FLASK_DEBUG"))

    try:
        app.run(host=host, port=port, debug=debug, use_reloader=debug)
    finally:
        shutdown(app)


if __name__ == "__main__":
    main()
