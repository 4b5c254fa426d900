"""
SciDigest: personal research library.

Collect papers and books, shelve them, annotate them, and carry the
whole library between devices inside an encrypted envelope.
"""

import os

__version__ = "1.1.0"
__author__ = "SciDigest"

SCHEMA_VERSION = __version__
APP_HOME = os.environ.get("SCIDIGEST_HOME", "~/.scidigest")
