"""
Pydantic request/response schemas.

Wire format is camelCase; Python attributes stay snake_case.
"""
