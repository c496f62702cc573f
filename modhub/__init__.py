"""
modhub: module lifecycle core (registry, dependency resolver, archive installer).
"""

__version__ = "0.1.0"
