"""
reffy - Keep a local reference store and Linear issues in sync.

Push local artifacts to Linear, pull Linear edits back, and never lose
either side's changes.
"""

__version__ = "0.4.0"
