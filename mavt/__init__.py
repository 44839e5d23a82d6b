"""
MAVT - Mobile App Version Tracker

A Python service that watches App Store apps for new versions, keeps a
durable history of every version change it observes, and announces
changes through an Apprise notification endpoint.

MAVT provides:
  - Enrollment of apps by bundle ID with catalog validation
  - Scheduled checks with per-app failure isolation
  - File-backed current state and append-only version history
  - Batched notifications via Apprise
  - A JSON HTTP API for dashboards and scripts

Quick Start
-----------
Track an app:

    $ mavt track com.spotify.client

Check all tracked apps once:

    $ mavt check

Run the scheduler and API server:

    $ mavt daemon

For full CLI documentation:

    $ mavt --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
tracker : module
    Change detection and enrollment.
store : package
    JSON record storage for current state and history.
catalog : package
    App Store (iTunes Search API) client.
notifier : module
    Apprise notification client.
config : package
    Defaults, YAML file and MAVT_* environment variables.
scheduler : module
    Background interval checks.
server : module
    JSON HTTP API.

Public API
----------
    from mavt.tracker import Tracker
    from mavt.store import RecordStore
    from mavt.catalog import AppStoreClient
    from mavt.notifier import AppriseNotifier
    from mavt.config import load_config

For more details, see the individual module docstrings.
"""

__version__ = "1.1.2"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Mobile App Version Tracker - App Store version change tracking"

# Re-export commonly used classes for convenience
from mavt.catalog import AppStoreClient
from mavt.config import Settings, load_config
from mavt.models import AppInfo, VersionUpdate
from mavt.notifier import AppriseNotifier
from mavt.store import RecordStore
from mavt.tracker import Tracker

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "AppInfo",
    "AppStoreClient",
    "AppriseNotifier",
    "RecordStore",
    "Settings",
    "Tracker",
    "VersionUpdate",
    "load_config",
]
