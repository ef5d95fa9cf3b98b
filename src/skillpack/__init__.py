"""
skillpack - Manage skill bundles: load, install as slash commands, and package.
"""

__version__ = "1.0.0"
