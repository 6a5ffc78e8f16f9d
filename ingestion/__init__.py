"""
Data Ingestion Module

Handles fetching and validating monthly series from external sources:
- Stooq for index close history
- Local CSV exports for series Stooq does not carry (e.g. P/E ratios)
"""

__version__ = "0.1.0"
