"""
HTTP application for the Chat Archive Gateway.
"""
