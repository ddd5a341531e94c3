"""
Text translation through a LibreTranslate-compatible API.
"""
