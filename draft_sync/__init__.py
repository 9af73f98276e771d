"""
Live draft room sync and auction inflation tracking.
"""

__version__ = '1.0.0'
