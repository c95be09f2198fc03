"""git-sync-backup - synchronize and back up files across devices with Git."""

__version__ = "0.2.1"
