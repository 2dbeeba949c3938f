"""
Chat Archive Gateway

Authenticated HTTP gateway serving paginated chat history and media files
fetched on demand from a remote object store into a local disk cache.
"""

__version__ = "0.1.0"
