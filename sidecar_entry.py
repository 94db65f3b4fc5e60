"""Launch the vocabulary capture API under uvicorn.

Usage:
    vocab-capture-backend --port 12345
    vocab-capture-backend --data-dir ./data --log-level debug

Also works as a PyInstaller entry script.
"""

import argparse
import os
import sys


def main() -> None:
    parser = argparse.ArgumentParser(description="Vocab Capture backend")
    parser.add_argument("--port", type=int, default=8000, help="HTTP port to listen on")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory holding vocabulary.db (overrides VOCAB_CAPTURE_DATA_DIR)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level for uvicorn and the vocab_capture loggers",
    )
    args = parser.parse_args()

    # Config is read at import time, so this must happen before the app loads
    if args.data_dir:
        os.environ["VOCAB_CAPTURE_DATA_DIR"] = os.path.abspath(args.data_dir)

    if getattr(sys, "frozen", False):
        import multiprocessing

        multiprocessing.freeze_support()

    import uvicorn
    from uvicorn.config import LOGGING_CONFIG

    log_config = LOGGING_CONFIG.copy()
    log_config["loggers"] = {
        **log_config["loggers"],
        "vocab_capture": {
            "handlers": ["default"],
            "level": args.log_level.upper(),
            "propagate": False,
        },
    }

    uvicorn.run(
        "vocab_capture.api.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        log_config=log_config,
    )


if __name__ == "__main__":
    main()
