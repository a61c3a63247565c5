"""
Command line interface for benchsink.
"""
