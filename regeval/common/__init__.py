"""
Shared configuration, data structures and error types.
"""
