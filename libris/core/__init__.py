#!/usr/bin/env python

"""
    Core module for Libris, db & engines

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from libris.core import db as database
from libris.core import models

db = database.init()

__all__ = ["db", "models"]
