"""
# Tables

Stacking of simulation results into 2D tables. Markup rendering (LaTeX,
HTML) is left to the consumer of `RenderedTable`.
"""

from .stacker import *
