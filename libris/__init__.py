#!/usr/bin/env python

"""
    Libris, a university library lending and document access system

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

__version__ = '0.1.0'
