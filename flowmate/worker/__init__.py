"""
Worker - scheduled jobs, their settings, and the engagement ranker.
"""
