"""
Services module - session coordination, AI adapters, and storage.
"""
