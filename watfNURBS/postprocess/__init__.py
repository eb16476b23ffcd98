"""
Post-processing: sampling curves and surfaces for display.
"""

from .sampling import (
    evaluate_polyline,
    polyline_indices,
    evaluate_mesh,
    tangent_segment,
)
