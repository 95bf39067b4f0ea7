"""
autotestfixer - patch failing assertion expectations and re-run the tests.
"""

__version__ = "0.1.0"
