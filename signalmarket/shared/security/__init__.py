"""
Security package: bearer-token auth, secure headers and rate limiting.
"""
