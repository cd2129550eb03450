"""
MapCheck - sourcemap diagnostics for deployed pages
"""
__version__ = '1.0.0'
