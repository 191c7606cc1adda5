"""
Workflow - executor, execution context and chat-triggered runs.
"""
