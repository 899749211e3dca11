"""Core domain package for tweetrelay.

Core contains stream resilience, rendering and routing logic without any
HTTP, Telegram or storage-specific code.
"""
