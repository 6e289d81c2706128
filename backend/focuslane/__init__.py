"""
FocusLane: a personal focus dashboard with a gentle assistant relay
"""
__version__ = "0.1.0"
