# python
"""jsonfs package"""
__version__ = "0.1"

from jsonfs.env import load_env

# Load .env values at import time so configuration relies on python-dotenv instead of manual parsing.
load_env()

from jsonfs.errors import FSError, SnapshotError  # noqa: E402
from jsonfs.fs import JsonFS  # noqa: E402
