"""
V1 API Schemas
"""
