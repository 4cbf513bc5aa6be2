"""Core: config, constants, and cache bootstrap.

Single place for settings and shared constants. Import from the submodules
(analytics_cache.core.config, analytics_cache.core.constants) so the domain
layer can use the constants without loading settings.
"""
