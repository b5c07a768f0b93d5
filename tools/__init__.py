"""
Command line tools for the score evaluation harness.
"""
