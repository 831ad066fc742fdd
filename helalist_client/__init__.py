"""
helalist-client: async client and command-line tool for a HelaList cloud drive.
"""

__version__ = "0.1.0"
