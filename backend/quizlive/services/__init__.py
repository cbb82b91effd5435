"""Domain services for live quiz sessions.

Everything under this package is transport-free: socket handlers and HTTP
routes call into it, and it reports back through the emitter it was given.
"""
