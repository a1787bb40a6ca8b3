"""
a51lab - A5/1 stream cipher engine for teaching and experimentation.
"""

__version__ = "1.0.0"
