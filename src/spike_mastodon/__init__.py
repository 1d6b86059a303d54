"""spike-mastodon Package.

A small harness that exercises the Mastodon API through Mastodon.py:
it registers and authorizes an app on first use, then verifies the
credentials and pages through the home timeline.

Exported Functions:
    main: Entry point for the spike-mastodon console command
    run: Executes one pass of the harness against a loaded config
"""
from .spike import main, run

__all__ = ["main", "run"]
