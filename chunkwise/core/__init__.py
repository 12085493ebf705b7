"""
Core upload engine: domain models, interfaces and services.
"""
