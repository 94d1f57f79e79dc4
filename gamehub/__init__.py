"""
GameHub: social gaming platform backend.
"""

__version__ = "1.0.0"
