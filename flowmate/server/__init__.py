"""
Flowmate Server

Workflow engine, credential resolution, OAuth lifecycle and the REST API.
"""
