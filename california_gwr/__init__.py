"""
Local regression and spatial interpolation of California precipitation and
1990 house prices.
"""
__version__ = "1.0.0"
