"""
HTTP interface for the marketplace bounded context.
"""
