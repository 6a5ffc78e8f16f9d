"""
Test Suite for the Crisis Roadmap Workbench

Includes:
- Unit tests for windowing, scaling, correlation and alignment
- Integration tests for the monthly series pipeline
- CLI tests against a seeded temporary database
"""
