"""
Core: error taxonomy, transcript normalization, WER scoring.
"""
