"""
Infrastructure layer: configuration, logging and transport clients.
"""
