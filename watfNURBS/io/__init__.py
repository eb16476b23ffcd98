"""
Input: evaluation settings and geometry records.
"""

from .config import EvaluationConfig, load_config, curve_from_records, surface_from_records
