"""
Memory Bank Server: versioned context documents for editors and AI assistants.

A local server that keeps a fixed set of project context documents on disk and
exposes them over a streaming request/response protocol gated by a security
policy.
"""

__version__ = "2.0.0"
