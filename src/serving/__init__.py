"""
HTTP Serving Layer
"""
