"""
chainbox - manage development blockchain nodes in Docker containers.
"""

__version__ = "0.4.2"
