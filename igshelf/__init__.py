"""
igshelf keeps a local copy of an Instagram timeline, fetched either from the
Instagram Basic Display API or from an Instagram zip archive.
"""

__version__ = "0.1.0"
