"""
Engine - module contracts, module registry and parameter binding.
"""
