"""
Services Package

Execution, validation and judging services for test runs.
"""
