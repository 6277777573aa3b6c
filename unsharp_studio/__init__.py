"""
Unsharp Studio
Pixel-level editing pipeline: unsharp masking, colour operators and an
alpha-driven stroke/halo overlay.
"""

__version__ = "1.0.0"
