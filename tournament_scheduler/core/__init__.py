"""
Configuration, logging and background worker setup.
"""
