"""
tasksync — daily tasks that follow you between devices.

Tasks live on the device first. A passphrase turns into a storage key,
the key points at one remote document, and every device that knows the
passphrase converges on that document.
"""

import os

__version__ = "0.1.0"
__author__ = "tasksync contributors"

TASKSYNC_HOME = os.environ.get("TASKSYNC_HOME", "~/.tasksync")
