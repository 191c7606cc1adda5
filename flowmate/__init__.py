"""
Flowmate - credential-aware workflow automation.

Packages:
- db: MongoDB connection manager and repositories
- server: module engine, credentials, OAuth, workflow execution, REST API
- worker: scheduled jobs (job settings, engagement ranking, job loop)
"""

__version__ = "0.4.0"
