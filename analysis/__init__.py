"""
Analysis Engine Module

Aligns the recent market path against historical crash-to-trough episodes:
- Current and historical window extraction
- Log-space scaling and Pearson correlation
- Sliding alignment search and dual-axis timeline
- Roadmap assembly with a TTL cache in front
"""

__version__ = "0.1.0"
