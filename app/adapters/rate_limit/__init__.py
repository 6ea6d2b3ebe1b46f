"""Rate limiting adapters.

Counters live in a key-value store (in-memory for development, Redis when
several workers share limits); the HTTP layer only sees the abstract limiter.
"""
