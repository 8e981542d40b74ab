"""
Service layer: write paths, cached read paths and external collaborators.
"""
