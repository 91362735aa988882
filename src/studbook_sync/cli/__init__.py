"""studbook CLI.

Usage:
    studbook pull                    Overwrite local collections from the remote store
    studbook push [COLLECTION]       Push local collections
    studbook sync                    Push pending, then pull
    studbook status                  Show local counts and sync state
    studbook config set-remote URL   Configure the remote store
"""

from studbook_sync.cli.main import app, main

__all__ = ["app", "main"]
