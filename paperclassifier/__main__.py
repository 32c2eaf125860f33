"""Entry point for running paperclassifier as a module or installed script.

Usage:
    paperclassifier / python -m paperclassifier         → HTTP app (uvicorn)
    paperclassifier <command> ... / python -m paperclassifier <command> ... → CLI
"""

import sys

import uvicorn


def run() -> None:
    """Entry point: no args → HTTP app, else → CLI."""
    if len(sys.argv) == 1:
        uvicorn.run("paperclassifier.gui.app:app", host="127.0.0.1", port=8000)
    else:
        from paperclassifier.cli import main
        sys.exit(main())


if __name__ == "__main__":
    run()
