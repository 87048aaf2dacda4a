"""
Service Calculator: pricing engine, quote PDF renderer and the catalog/session
plumbing around them.
"""

__version__ = "0.1.0"
