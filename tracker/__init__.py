"""
Product Evaluation Tracker

Records dropshipping product candidates, derives their net profit and
tracks market-test outcomes.
"""

__version__ = "1.0.0"
